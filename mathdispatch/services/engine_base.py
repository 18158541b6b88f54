"""
MathDispatch — Abstract Typesetting Engine Interface
=====================================================

What:  The contract for MathML → SVG engines used by the local converter.
Why:   The converter only needs three things from an engine: the SVG root's
       outer markup, its width and its height. Keeping that narrow lets tests
       use a fake and lets hosts swap ziamath for another renderer.
"""

from abc import ABC, abstractmethod
from typing import NamedTuple


class RenderedSvg(NamedTuple):
    """SVG root element produced by an engine."""
    outer_markup: str
    width: str
    height: str


class TypesettingEngine(ABC):
    """Synchronous, side-effect-free MathML renderer."""

    @abstractmethod
    def render(self, mathml: str) -> RenderedSvg:
        """
        Render one MathML formula.

        Raises:
            ConversionError: malformed MathML, or the engine produced no SVG
                root with width and height attributes.
        """
        ...
