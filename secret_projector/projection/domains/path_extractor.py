"""JSONPath lookups over parsed JSON/YAML documents."""
import logging
from typing import Any

from jsonpath_ng import parse
from jsonpath_ng.exceptions import JSONPathError

from .errors import InvalidPathError, PathNotFoundError

logger = logging.getLogger(__name__)


def lookup(document: Any, path: str) -> Any:
    """
    Resolve a JSONPath expression against a parsed document.

    Args:
        document: Tree of dicts, lists and scalars (json.loads / yaml.safe_load output)
        path: JSONPath expression, e.g. "$.nesting.list[1]"

    Returns:
        The matched value. Expressions matching several nodes (wildcards,
        slices) return the matched values as a list, in document order.

    Raises:
        InvalidPathError: If the expression cannot be parsed
        PathNotFoundError: If the expression matches nothing
    """
    try:
        expression = parse(path)
    except JSONPathError as e:
        raise InvalidPathError(f"invalid path expression '{path}': {e}") from e

    matches = expression.find(document)
    if not matches:
        raise PathNotFoundError(f"path '{path}' not found in document")

    if len(matches) == 1:
        return matches[0].value

    logger.debug(f"Path '{path}' matched {len(matches)} nodes")
    return [match.value for match in matches]
