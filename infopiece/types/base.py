"""
Wire Model Base

Records serialize with camelCase keys (informationPiece, isInstruction, ...)
so exported sessions match the JSON schemas sent to the model. Python code
uses snake_case attribute names; both spellings are accepted on input.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """BaseModel with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump as a JSON-compatible dict using camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
