"""JSON-schema checks for model-supplied tool arguments."""

import jsonschema
from jsonschema.exceptions import best_match

from companion.tools.base import Tool, normalize_schema


class ToolValidator:
    @staticmethod
    def validate(tool: Tool, arguments: dict) -> tuple[bool, str | None]:
        """Return ``(ok, message)``; *message* names the offending field if any."""
        validator = jsonschema.Draft202012Validator(normalize_schema(tool.parameters))
        error = best_match(validator.iter_errors(arguments))
        if error is None:
            return True, None
        where = ".".join(str(p) for p in error.absolute_path)
        return False, f"{where}: {error.message}" if where else error.message
