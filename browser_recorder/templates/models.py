"""Data models for code templates."""

import re
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class TemplateCategory(str, Enum):
    """What a template produces."""

    TEST = "test"
    PAGE_OBJECT = "page-object"
    HELPER = "helper"
    CONFIG = "config"
    SETUP = "setup"


PlaceholderType = Literal["string", "number", "boolean", "array", "object"]

# Framework value for templates shared by every framework
GENERIC_FRAMEWORK = "generic"


class TemplatePlaceholder(BaseModel):
    """A named slot a template expects in its render context."""

    key: str = Field(..., min_length=1, description="Context path the template reads")
    name: str = Field(..., description="Human readable name")
    description: str = Field("", description="What the value is used for")
    type: PlaceholderType = Field("string", description="Expected value type")
    required: bool = Field(False, description="Whether the value must be supplied")
    default_value: Any = Field(None, description="Value used when the context omits the key")
    validation: Optional[str] = Field(None, description="Regex the value must match")
    options: Optional[list[Any]] = Field(None, description="Allowed values")

    @field_validator("validation")
    @classmethod
    def validate_pattern(cls, v: Optional[str]) -> Optional[str]:
        """Validation must be a compilable regex."""
        if v is not None:
            try:
                re.compile(v)
            except re.error as e:
                raise ValueError(f"Invalid validation pattern: {e}") from e
        return v


class CodeTemplate(BaseModel):
    """A reusable code template.

    Example:
        template = CodeTemplate(
            id="greeting",
            name="Greeting",
            framework="generic",
            language="javascript",
            template="console.log('Hello {{name}}');",
            placeholders=[TemplatePlaceholder(key="name", name="Name", required=True)],
        )
    """

    id: str = Field(..., min_length=1, description="Unique template id")
    name: str = Field(..., min_length=1, description="Display name")
    description: str = Field("", description="What the template generates")
    framework: str = Field(..., description="Target framework or 'generic'")
    language: str = Field(..., description="Target language")
    category: TemplateCategory = Field(TemplateCategory.TEST, description="Kind of file produced")
    template: str = Field(..., description="Template source")
    placeholders: list[TemplatePlaceholder] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list, description="Packages the output needs")
    imports: list[str] = Field(default_factory=list, description="Import lines the output needs")
    tags: list[str] = Field(default_factory=list)

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Ids are used in include tags and must not contain whitespace."""
        if re.search(r"\s", v):
            raise ValueError("Template id must not contain whitespace")
        return v

    @model_validator(mode="after")
    def validate_placeholders(self) -> "CodeTemplate":
        """Placeholder keys must be unique."""
        keys = [p.key for p in self.placeholders]
        duplicates = sorted({k for k in keys if keys.count(k) > 1})
        if duplicates:
            raise ValueError(f"Duplicate placeholder keys: {duplicates}")
        return self

    def matches(self, framework: Optional[str] = None, language: Optional[str] = None) -> bool:
        """Whether the template applies to a framework/language pair."""
        if framework and self.framework not in (framework, GENERIC_FRAMEWORK):
            return False
        if language and self.language != language:
            return False
        return True
