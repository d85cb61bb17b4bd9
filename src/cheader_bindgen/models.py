"""Pydantic models for validating user-supplied tables and options."""

from pydantic import BaseModel, Field, field_validator

from .emitters import EMITTERS
from .parser.tokenizer import tokenize


class KnownAliasTable(BaseModel):
    """Known-alias seed table: typedef name -> canonical primitive type."""

    aliases: dict[str, str] = Field(default_factory=dict, description="Seed aliases")

    @field_validator("aliases")
    @classmethod
    def validate_aliases(cls, v: dict[str, str]) -> dict[str, str]:
        cleaned = {}
        for name, target in v.items():
            name = name.strip()
            target = target.strip()
            if not name.isidentifier() or not name.isascii():
                raise ValueError(f"Alias name '{name}' is not a C identifier")
            if not target:
                raise ValueError(f"Alias '{name}' has an empty target")
            if "\n" in target or '"' in target or "'" in target:
                raise ValueError(f"Alias '{name}' target must be plain type text")
            if not tokenize(target):
                raise ValueError(f"Alias '{name}' target has no tokens")
            cleaned[name] = target
        return cleaned


class DirectiveMarkers(BaseModel):
    """Leading identifiers of statements that end when their brackets close."""

    markers: list[str] = Field(..., min_length=1, max_length=64)

    @field_validator("markers")
    @classmethod
    def validate_markers(cls, v: list[str]) -> list[str]:
        for marker in v:
            if not marker.isidentifier() or not marker.isascii():
                raise ValueError(f"Directive marker '{marker}' is not a C identifier")
        return v


class TranslateInput(BaseModel):
    """Options for one translation run."""

    target: str = Field(default="text", description="Emitter target")

    @field_validator("target")
    @classmethod
    def validate_target(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in EMITTERS:
            raise ValueError(f"Invalid target '{v}'. Must be one of: {sorted(EMITTERS)}")
        return v
