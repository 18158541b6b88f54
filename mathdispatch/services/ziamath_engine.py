"""
MathDispatch — ziamath Typesetting Engine
==========================================

What:  TypesettingEngine backed by ziamath (pure-Python MathML → SVG).
Why:   No browser, no Node runtime: ziamath draws glyphs as SVG paths from a
       bundled math font, so the output does not depend on installed fonts.
How:   Check that the input is rooted at <math>, parse it with ziamath, take
       the SVG root as an ElementTree element and read its width/height.

Rejected input:
    ziamath happily lays out any well-formed XML, so ``<foo/>`` would render
    as an "image" with negative height. The root element must be ``math``
    (with or without the MathML namespace) and both dimensions positive.
"""

import logging
import xml.etree.ElementTree as ET

import ziamath

from mathdispatch.config import DispatcherSettings, settings
from mathdispatch.exceptions import ConversionError
from mathdispatch.services.engine_base import RenderedSvg, TypesettingEngine
from mathdispatch.services.local_converter import strip_unit

logger = logging.getLogger(__name__)

SVG_NAMESPACE = "http://www.w3.org/2000/svg"

ET.register_namespace("", SVG_NAMESPACE)


def _local_name(tag: str) -> str:
    """'{http://www.w3.org/1998/Math/MathML}math' → 'math'"""
    return tag.rsplit("}", 1)[-1]


def _is_positive(dimension: str) -> bool:
    try:
        return float(strip_unit(dimension)) > 0
    except ValueError:
        return False


class ZiamathEngine(TypesettingEngine):
    """Renders MathML at ``svg_font_size`` points."""

    def __init__(self, config: DispatcherSettings = settings):
        self.font_size = config.svg_font_size

    def render(self, mathml: str) -> RenderedSvg:
        self._check_root(mathml)

        try:
            svg = ziamath.Math(mathml, size=self.font_size).svgxml()
        except Exception as e:
            # ziamath surfaces ParseError for bad XML and assorted errors for
            # unsupported constructs; the converter only needs "it failed"
            raise ConversionError(
                message=f"ziamath could not render MathML: {e}",
                mathml=mathml,
                context={"error_type": type(e).__name__},
            ) from e

        width = svg.get("width")
        height = svg.get("height")
        if width is None or height is None:
            raise ConversionError(
                message="Rendered SVG has no width/height attributes",
                mathml=mathml,
            )
        if not (_is_positive(width) and _is_positive(height)):
            raise ConversionError(
                message=f"Rendered SVG has unusable dimensions {width} x {height}",
                mathml=mathml,
                context={"width": width, "height": height},
            )

        logger.debug("ziamath rendered %s x %s SVG", width, height)
        return RenderedSvg(
            outer_markup=ET.tostring(svg, encoding="unicode"),
            width=width,
            height=height,
        )

    @staticmethod
    def _check_root(mathml: str) -> None:
        try:
            root = ET.fromstring(mathml.strip())
        except ET.ParseError:
            # Undeclared entities (&nbsp; ...) trip ElementTree; ziamath decides
            return
        if _local_name(root.tag) != "math":
            raise ConversionError(
                message=f"Root element is <{_local_name(root.tag)}>, not <math>",
                mathml=mathml,
                context={"root": root.tag},
            )
