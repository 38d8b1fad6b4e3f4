"""Auto-layout: generate with text, extract the layout, regenerate clean"""

import logging
from pathlib import Path
from typing import Optional

from .image_generator import ImageGenerator
from .layout_extractor import LayoutExtractor
from .media_models import AutoLayoutResult, ImageSynthesisRequest, Job

NO_TEXT_INSTRUCTION = (
    "\n\nCRITICAL: DO NOT render any text, words, labels, numbers, "
    "or letters anywhere on the image. The image must be purely visual with no readable "
    "content whatsoever. Leave clean space where text would normally appear."
)

CLEAN_REGENERATION_INSTRUCTION = (
    "\n\nCRITICAL: DO NOT render any text, words, labels, numbers, "
    "or letters anywhere on the image. The image must be purely visual "
    "with no readable content whatsoever. Recreate the exact same layout, "
    "colors, and visual elements as the reference image, but remove ALL text."
)


def reference_path_for(output_path: str) -> str:
    out = Path(output_path)
    return str(out.with_name(f"{out.stem}-ref{out.suffix or '.png'}"))


class AutoLayoutPipeline:
    """
    Three phases per job:

    1. reference: render the prompt with text baked in, at the (cheaper)
       reference resolution;
    2. extraction: ask the vision provider for the text layout, exactly once;
       any failure is logged and leaves the job without texts;
    3. regeneration: render the final image from the same prompt with the
       reference as a layout anchor and every piece of text removed.

    The reference image stays on disk for inspection.
    """

    def __init__(self,
                 generator: ImageGenerator,
                 extractor: LayoutExtractor,
                 ref_image_size: Optional[str] = None):
        self.generator = generator
        self.extractor = extractor
        self.ref_image_size = ref_image_size
        self.logger = logging.getLogger('panelforge.auto_layout')

    async def run(self, job: Job, style_hint: Optional[str] = None) -> AutoLayoutResult:
        tag = job.tag
        ref_file = reference_path_for(job.output_path)
        reference = await self.generator.synthesize(ImageSynthesisRequest(
            prompt=job.prompt,
            output_path=ref_file,
            image_size=self.ref_image_size or job.image_size,
            aspect_ratio=job.aspect_ratio,
            reference_images=list(job.reference_images),
            model=job.model,
            label=f"{tag} (ref)",
        ))

        texts = None
        if reference is None:
            self.logger.warning(f"{tag}: no reference image, skipping layout extraction")
        else:
            try:
                texts = await self.extractor.extract(reference, style_hint=style_hint)
                self.logger.info(f"{tag}: extracted {len(texts)} text elements")
            except Exception as e:
                self.logger.warning(f"{tag}: vision QA failed - {e}")

        anchors = ([reference] if reference else []) + list(job.reference_images)
        final = await self.generator.synthesize(ImageSynthesisRequest(
            prompt=job.prompt + CLEAN_REGENERATION_INSTRUCTION,
            output_path=job.output_path,
            image_size=job.image_size,
            aspect_ratio=job.aspect_ratio,
            reference_images=anchors,
            model=job.model,
            label=tag,
        ))

        return AutoLayoutResult(
            output_path=final,
            reference_path=reference,
            texts=texts,
            extraction_failed=texts is None,
        )
