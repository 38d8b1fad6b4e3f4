"""Batch entry points: slides, cards, video cards, comics and infographics"""

import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

from .artifact_cache import ArtifactCache
from .auto_layout import AutoLayoutPipeline, NO_TEXT_INSTRUCTION
from .image_generator import ImageGenerator
from .layout_extractor import Canvas, LayoutExtractor
from .media_models import (
    BatchReport, CardRequest, ImageSynthesisRequest, Job, PanelRequest,
    SlideRequest, SlideSpec, StitchLayout, VideoCardsReport,
)
from .style_sheet import StyleSheet
from ..automation.scheduler import JobScheduler
from ..providers.base import (
    DeckWriter, ImageProvider, ImageRefiner, LayoutVisionProvider, VideoProvider,
)
from ..utils.errors import ConfigurationError
from ..video_assembly.card_animator import CardAnimator
from ..video_assembly.compositor import Compositor, MediaCompositor
from ..video_assembly.stitcher import PanelStitcher
from ..video_assembly.video_models import AnimationRequest

StyleRef = Union[StyleSheet, str]
Sleep = Callable[[float], Awaitable[None]]


def _coerce(items: Sequence[Any], model):
    return [item if isinstance(item, model) else model(**item) for item in items]


def refined_path_for(path: str) -> str:
    p = Path(path)
    return str(p.with_name(f"{p.stem}-refined{p.suffix}"))


class MediaPipeline:
    """Main media generation pipeline"""

    def __init__(self,
                 config,
                 image_provider: Optional[ImageProvider] = None,
                 video_provider: Optional[VideoProvider] = None,
                 vision_provider: Optional[LayoutVisionProvider] = None,
                 compositor: Optional[Compositor] = None,
                 refiner: Optional[ImageRefiner] = None,
                 deck_writer: Optional[DeckWriter] = None,
                 sleep: Optional[Sleep] = None):
        self.config = config
        self.logger = logging.getLogger('panelforge.media_pipeline')
        gen = config.generation

        if image_provider is None or video_provider is None or vision_provider is None:
            from ..providers.gemini_client import (
                GeminiImageProvider, GeminiVideoProvider, GeminiVisionProvider, get_gemini_client,
            )
            client = get_gemini_client(config)
            image_provider = image_provider or GeminiImageProvider(client, gen.gen_model)
            video_provider = video_provider or GeminiVideoProvider(client)
            vision_provider = vision_provider or GeminiVisionProvider(client, gen.vision_model)

        if refiner is None and config.api_keys.optional("dashscope"):
            from .image_refiner import DashscopeImageRefiner
            refiner = DashscopeImageRefiner.from_config(config, sleep=sleep)

        self.compositor = compositor or MediaCompositor()
        self.refiner = refiner
        self.deck_writer = deck_writer
        self.cache = ArtifactCache.from_config(config)

        self.generator = ImageGenerator.from_config(config, image_provider, sleep=sleep)
        self.scheduler = JobScheduler(handler=self._synthesize_job)
        self.extractor = LayoutExtractor(vision_provider, Canvas.from_config(config), model=gen.vision_model)
        self.auto_layout = AutoLayoutPipeline(self.generator, self.extractor, ref_image_size=gen.ref_image_size)
        self.stitcher = PanelStitcher(self.compositor)
        self.animator = CardAnimator.from_config(config, video_provider, self.compositor, sleep=sleep)

        self._styles: Dict[str, StyleSheet] = {}

    # ------------------------------------------------------------------ helpers

    def resolve_style(self, style: StyleRef) -> StyleSheet:
        """Style sheets are loaded from ``paths.styles/<name>.yaml``; a missing file is fatal"""
        if isinstance(style, StyleSheet):
            return style
        if style not in self._styles:
            self._styles[style] = StyleSheet.load(Path(self.config.paths.styles) / f"{style}.yaml")
        return self._styles[style]

    async def _synthesize_job(self, job: Job) -> Optional[str]:
        return await self.generator.synthesize(ImageSynthesisRequest.from_job(job))

    async def _refine_panels(self, paths: List[Optional[str]], requests: Sequence[PanelRequest]) -> List[Optional[str]]:
        """Sequential edit pass; a failed edit keeps the unrefined panel"""
        if self.refiner is None:
            self.logger.info("No image refiner configured, skipping refinement")
            return paths

        refined = list(paths)
        for i, (path, req) in enumerate(zip(paths, requests)):
            if not path or not req.refine_prompt:
                continue
            try:
                refined[i] = await self.refiner.edit(path, req.refine_prompt, refined_path_for(path))
            except Exception as e:
                self.logger.warning(f"Panel {i + 1} refinement failed: {e}")
        return refined

    # ------------------------------------------------------------------ slides

    async def generate_slides(self,
                              slides: Sequence[Union[SlideRequest, Dict[str, Any]]],
                              slide_dir: Union[str, Path],
                              style: StyleRef,
                              deck_path: Optional[Union[str, Path]] = None,
                              concurrency: Optional[int] = None,
                              image_size: Optional[str] = None) -> BatchReport:
        """Generate slide images (auto-layout where flagged) and hand them to the deck writer"""
        slides = _coerce(slides, SlideRequest)
        if deck_path and self.deck_writer is None:
            raise ConfigurationError("deck_path given but no deck writer configured")

        gen = self.config.generation
        style_sheet = self.resolve_style(style)
        slide_dir = Path(slide_dir)
        slide_dir.mkdir(parents=True, exist_ok=True)
        image_size = image_size or gen.image_size
        total = len(slides)

        jobs = []
        for idx, s in enumerate(slides):
            prompt = style_sheet.get_style(s.style) + "\n\n" + s.prompt
            if not s.auto_layout and s.texts:
                prompt += NO_TEXT_INSTRUCTION
            jobs.append(Job(
                index=idx,
                prompt=prompt,
                output_path=str(slide_dir / f"slide-{idx + 1:02d}.png"),
                variant=s.style,
                image_size=image_size,
                aspect_ratio=gen.slide_aspect_ratio,
                model=s.gen_model,
                reference_images=s.images,
                auto_layout=s.auto_layout,
                label=f"Slide {idx + 1}",
            ))

        extracted: List[Optional[list]] = [None] * total

        async def handle(job: Job) -> Optional[str]:
            if not job.auto_layout:
                return await self._synthesize_job(job)
            result = await self.auto_layout.run(job, style_hint=style_sheet.get_style(job.variant))
            extracted[job.index] = result.texts
            return result.output_path

        self.logger.info(f"Generating {total} slides...")
        results = await self.scheduler.run_batch(
            jobs, concurrency or gen.slide_concurrency, handler=handle,
        )

        specs = []
        for idx, (path, s) in enumerate(zip(results, slides)):
            texts = extracted[idx] if (s.auto_layout and extracted[idx] is not None) else s.texts
            specs.append(SlideSpec(path=path, texts=texts, tables=s.tables))

        report = BatchReport(total=total, results=results, slides=specs)
        if deck_path:
            self.logger.info("Building deck...")
            self.deck_writer.write(specs, str(deck_path))
            report.artifact_path = str(deck_path)

        self.logger.info(f"Done: {deck_path or slide_dir} ({report.summary()})")
        return report

    # ------------------------------------------------------------------ cards

    def _card_jobs(self, cards: Sequence[CardRequest], card_dir: Path,
                   style_sheet: StyleSheet, aspect_ratio: str,
                   image_size: Optional[str]) -> List[Job]:
        return [
            Job(
                index=idx,
                prompt=style_sheet.get_style(c.style) + "\n\n" + c.prompt,
                output_path=str(card_dir / f"card-{c.name}.png"),
                variant=c.style,
                image_size=image_size,
                aspect_ratio=aspect_ratio,
                label=c.name,
            )
            for idx, c in enumerate(cards)
        ]

    async def generate_cards(self,
                             cards: Sequence[Union[CardRequest, Dict[str, Any]]],
                             card_dir: Union[str, Path],
                             style: StyleRef,
                             aspect_ratio: Optional[str] = None,
                             concurrency: Optional[int] = None,
                             image_size: Optional[str] = None) -> BatchReport:
        cards = _coerce(cards, CardRequest)
        gen = self.config.generation
        card_dir = Path(card_dir)
        card_dir.mkdir(parents=True, exist_ok=True)
        aspect_ratio = aspect_ratio or gen.card_aspect_ratio

        jobs = self._card_jobs(cards, card_dir, self.resolve_style(style), aspect_ratio,
                               image_size or gen.image_size)
        self.logger.info(f"Generating {len(jobs)} cards ({aspect_ratio})...")
        results = await self.scheduler.run_batch(jobs, concurrency or gen.card_concurrency)

        report = BatchReport(total=len(jobs), results=results)
        self.logger.info(f"Done: {report.summary()} cards in {card_dir}/")
        return report

    async def generate_video_cards(self,
                                   cards: Sequence[Union[CardRequest, Dict[str, Any]]],
                                   card_dir: Union[str, Path],
                                   style: StyleRef,
                                   anim_style: StyleRef,
                                   bgm_path: Optional[Union[str, Path]] = None,
                                   aspect_ratio: Optional[str] = None,
                                   concurrency: Optional[int] = None,
                                   image_size: Optional[str] = None) -> VideoCardsReport:
        """
        Generate every card image concurrently, then animate the cards one at
        a time. Cards whose image failed are skipped.
        """
        cards = _coerce(cards, CardRequest)
        gen = self.config.generation
        video = self.config.video
        card_dir = Path(card_dir)
        card_dir.mkdir(parents=True, exist_ok=True)
        anim_sheet = self.resolve_style(anim_style)

        anim_prompts = []
        for c in cards:
            prompt = anim_sheet.get_style(c.anim_style)
            if c.anim_desc:
                prompt = f"{prompt}\n\n{c.anim_desc}" if prompt else c.anim_desc
            if not prompt:
                raise ConfigurationError(f"No animation prompt for card {c.name} ({c.anim_style})")
            anim_prompts.append(prompt)

        total = len(cards)
        self.logger.info(f"=== Phase 1: Generating {total} card images ===")
        jobs = self._card_jobs(cards, card_dir, self.resolve_style(style),
                               aspect_ratio or gen.card_aspect_ratio, image_size or gen.image_size)
        images = await self.scheduler.run_batch(jobs, concurrency or gen.video_card_concurrency)

        self.logger.info(f"=== Phase 2: Animating {total} cards ===")
        videos: List[Optional[str]] = []
        for c, image_path, anim_prompt in zip(cards, images, anim_prompts):
            if not image_path:
                self.logger.warning(f"[{c.name}] Skipped (no image)")
                videos.append(None)
                continue

            result = await self.animator.animate(AnimationRequest(
                image_path=Path(image_path),
                output_path=card_dir / f"card-{c.name}-animated.mp4",
                anim_prompt=anim_prompt,
                bgm_path=Path(bgm_path) if bgm_path else None,
                still_duration=video.still_duration,
                crossfade_duration=video.crossfade_duration,
                fade_out_duration=video.fade_out_duration,
                music_volume=video.music_volume,
                music_fade_in=video.music_fade_in,
                label=c.name,
            ))
            videos.append(str(result.output_path))

        report = VideoCardsReport(total=total, images=images, videos=videos)
        self.logger.info(f"Done: {report.summary()} in {card_dir}/")
        return report

    # ------------------------------------------------------------------ comics & infographics

    async def generate_comic(self,
                             panels: Sequence[Union[PanelRequest, Dict[str, Any]]],
                             out_dir: Union[str, Path],
                             out_file: Union[str, Path],
                             style: StyleRef = "xkcd",
                             layout: Union[StitchLayout, str] = StitchLayout.HORIZONTAL,
                             image_size: Optional[str] = None,
                             concurrency: Optional[int] = None,
                             refine: bool = False,
                             gutter: Optional[int] = None,
                             gen_model: Optional[str] = None) -> BatchReport:
        """Multi-panel comic strip stitched horizontally, vertically or as a grid"""
        panels = _coerce(panels, PanelRequest)
        layout = StitchLayout(layout)
        gen = self.config.generation
        style_sheet = self.resolve_style(style)
        out_dir = Path(out_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        total = len(panels)
        panel_aspect = "16:9" if layout is StitchLayout.VERTICAL else "1:1"
        prefix = style_sheet.get_style("panel") or style_sheet.get_style("normal")

        jobs = [
            Job(
                index=idx,
                prompt=f"{prefix}\n\nPanel {idx + 1} of {total}:\n{p.prompt}",
                output_path=str(out_dir / f"panel-{idx + 1:02d}.png"),
                variant="panel",
                image_size=image_size or gen.comic_image_size,
                aspect_ratio=panel_aspect,
                model=gen_model,
                label=f"Panel {idx + 1}",
            )
            for idx, p in enumerate(panels)
        ]

        self.logger.info(f"Generating {total}-panel comic ({style_sheet.name}, {layout.value})...")
        results = await self.scheduler.run_batch(jobs, concurrency or gen.comic_concurrency)
        if refine:
            results = await self._refine_panels(results, panels)

        gutter = self.config.stitch.comic_gutter if gutter is None else gutter
        artifact = await self.stitcher.stitch(results, out_file, layout, gutter)
        return BatchReport(total=total, results=results, artifact_path=artifact)

    async def generate_infographic(self,
                                   sections: Sequence[Union[PanelRequest, Dict[str, Any]]],
                                   out_dir: Union[str, Path],
                                   out_file: Union[str, Path],
                                   style: StyleRef = "cyberpunk-neon",
                                   aspect_ratio: Optional[str] = None,
                                   image_size: Optional[str] = None,
                                   concurrency: Optional[int] = None,
                                   refine: bool = True,
                                   gutter: Optional[int] = None,
                                   gen_model: Optional[str] = None) -> BatchReport:
        """Multi-section infographic stitched top to bottom"""
        sections = _coerce(sections, PanelRequest)
        gen = self.config.generation
        style_sheet = self.resolve_style(style)
        out_dir = Path(out_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        total = len(sections)

        jobs = []
        for idx, s in enumerate(sections):
            variant = s.variant or ("header" if idx == 0 else "footer" if idx == total - 1 else "normal")
            jobs.append(Job(
                index=idx,
                prompt=f"{style_sheet.get_style(variant)}\n\nSection {idx + 1} of {total}:\n{s.prompt}",
                output_path=str(out_dir / f"section-{idx + 1:02d}.png"),
                variant=variant,
                image_size=image_size or gen.infographic_image_size,
                aspect_ratio=aspect_ratio or gen.infographic_aspect_ratio,
                model=gen_model,
                label=f"Section {idx + 1}",
            ))

        self.logger.info(f"Generating {total}-section infographic ({style_sheet.name})...")
        results = await self.scheduler.run_batch(jobs, concurrency or gen.infographic_concurrency)
        if refine:
            results = await self._refine_panels(results, sections)

        gutter = self.config.stitch.infographic_gutter if gutter is None else gutter
        artifact = await self.stitcher.stitch(results, out_file, StitchLayout.VERTICAL, gutter)
        return BatchReport(total=total, results=results, artifact_path=artifact)
