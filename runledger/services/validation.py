from typing import Any, Optional
from pydantic import BaseModel, TypeAdapter, ValidationError

# Minimal token schema: any JSON object. Validated at the boundary only.
_tokens_adapter = TypeAdapter(dict[str, Any])


class ValidationIssue(BaseModel):
    path: str
    message: str


class ValidationResult(BaseModel):
    ok: bool
    issues: Optional[list[ValidationIssue]] = None


class ValidationService:
    def validate_tokens(self, tokens: Any) -> ValidationResult:
        try:
            _tokens_adapter.validate_python(tokens, strict=True)
        except ValidationError as e:
            issues = [
                ValidationIssue(
                    path=".".join(str(part) for part in err["loc"]) or "(root)",
                    message=err["msg"],
                )
                for err in e.errors()
            ]
            return ValidationResult(ok=False, issues=issues)
        return ValidationResult(ok=True)
