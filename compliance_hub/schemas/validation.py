from pydantic import BaseModel


class SchemaIssue(BaseModel):
    """Individual schema problem"""
    path: str  # e.g. "sections[0].fields[2]"
    code: str  # unknown_field, unknown_key, dependency_cycle, etc.
    message: str


class SchemaCheckResponse(BaseModel):
    """Response from the schema-check endpoint"""
    valid: bool
    errors: list[SchemaIssue]
    warnings: list[SchemaIssue]  # Non-blocking
