"""Style sheets: named prompt prefixes loaded from YAML"""

from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, ValidationError

from ..utils.errors import ConfigurationError


class StyleVariant(BaseModel):
    prompt: str = ""


class StyleSheet(BaseModel):
    """
    A style file looks like::

        meta:
          name: xkcd
        variants:
          default: normal
          normal:
            prompt: "Stick figures, hand-drawn lines..."
          header:
            prompt: "..."
    """
    name: str
    meta: Dict[str, Any] = {}
    default: str = "normal"
    variants: Dict[str, StyleVariant] = {}

    @classmethod
    def load(cls, path: Union[str, Path]) -> "StyleSheet":
        style_file = Path(path)
        if not style_file.exists():
            raise FileNotFoundError(f"Style not found: {style_file}")

        with open(style_file, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Style file {style_file} must contain a mapping")

        variants = dict(data.get('variants') or {})
        default = variants.pop('default', 'normal')
        try:
            return cls(
                name=style_file.stem,
                meta=data.get('meta') or {},
                default=default,
                variants=variants,
            )
        except ValidationError as e:
            raise ConfigurationError(f"Invalid style file {style_file}: {e}") from e

    @classmethod
    def from_prompts(cls, name: str, prompts: Dict[str, str], default: str = "normal") -> "StyleSheet":
        return cls(name=name, default=default,
                   variants={tag: StyleVariant(prompt=p) for tag, p in prompts.items()})

    def get_style(self, tag: Optional[str]) -> str:
        """Prompt prefix for ``tag``, falling back to the default variant, then to ''"""
        for key in (tag, self.default):
            variant = self.variants.get(key) if key else None
            if variant and variant.prompt:
                return variant.prompt
        return ""


def load_style_dir(directory: Union[str, Path]) -> Dict[str, StyleSheet]:
    """Every ``*.yaml``/``*.yml`` style in ``directory`` keyed by file stem"""
    catalog = {}
    for f in sorted(Path(directory).iterdir()):
        if f.suffix in ('.yaml', '.yml'):
            catalog[f.stem] = StyleSheet.load(f)
    return catalog
