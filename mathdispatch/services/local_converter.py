"""
MathDispatch — Local Converter Adapter
=======================================

What:  Converts MathML into the same envelope the showimage service returns.
Why:   Without a configured backend the editor still needs to display
       formulas. The editor cannot tell a locally rendered envelope from a
       remote one, so no caller changes are needed.
How:   Delegate to a TypesettingEngine, strip units from width/height, and
       wrap the SVG in an ``ok`` envelope.

Known limitation:
    ``baseline`` is the fixed placeholder "27" and ``alt`` is empty. The local
    path does not measure the baseline or generate accessible text.
"""

import logging
import re
from typing import Optional

from mathdispatch.exceptions import ConversionError
from mathdispatch.schemas.envelope import ImageResult, ResponseEnvelope
from mathdispatch.services.engine_base import TypesettingEngine

logger = logging.getLogger(__name__)

PLACEHOLDER_BASELINE = "27"

_UNIT_SUFFIX = re.compile(r"(ex|em|px|pt)$", re.IGNORECASE)


def strip_unit(value: str) -> str:
    """'4.5ex' → '4.5'. Values without a unit are returned trimmed."""
    return _UNIT_SUFFIX.sub("", value.strip()).strip()


class LocalConverter:
    """Wraps a TypesettingEngine; the engine is built lazily when not given."""

    def __init__(self, engine: Optional[TypesettingEngine] = None):
        self._engine = engine

    @property
    def engine(self) -> TypesettingEngine:
        if self._engine is None:
            # Deferred so hosts that always use a backend never import ziamath
            from mathdispatch.services.ziamath_engine import ZiamathEngine
            self._engine = ZiamathEngine()
        return self._engine

    def convert_mathml_to_svg(self, mathml: str) -> str:
        """
        Render ``mathml`` and return the serialized ``ok`` envelope.

        Raises:
            ConversionError: empty or malformed MathML, or engine failure.
        """
        if not isinstance(mathml, str) or not mathml.strip():
            raise ConversionError(message="No MathML to convert", context={"type": type(mathml).__name__})

        rendered = self.engine.render(mathml)

        envelope = ResponseEnvelope(
            status="ok",
            result=ImageResult(
                height=strip_unit(rendered.height),
                width=strip_unit(rendered.width),
                content=rendered.outer_markup,
                baseline=PLACEHOLDER_BASELINE,
                format="svg",
                alt="",
                role="math",
            ),
        )
        logger.info("Converted MathML locally (%s x %s)", envelope.result.width, envelope.result.height)
        return envelope.to_json()
