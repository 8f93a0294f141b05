"""Input validation for CLI arguments."""
import re
import sys
from typing import Tuple

LABEL_PATTERN = r'^[a-zA-Z0-9_.-]+$'


def validate_creds_repo_arg(value: str) -> Tuple[str, str]:
    """
    Validate and split a --creds-repo argument.

    Format: label=path, where label matches [a-zA-Z0-9_.-]+

    Args:
        value: Raw argument value

    Returns:
        Tuple of (label, path)

    Raises:
        SystemExit with code 2 if validation fails
    """
    label, sep, path = value.partition("=")

    if not sep or not label or not path:
        print(f"Error: Invalid --creds-repo argument '{value}'", file=sys.stderr)
        print("\nExpected format: label=/path/to/repo", file=sys.stderr)
        print("\nExamples:", file=sys.stderr)
        print("  ✓ production=/srv/creds/production", file=sys.stderr)
        print("  ✓ development=./creds/dev", file=sys.stderr)
        sys.exit(2)

    if not re.match(LABEL_PATTERN, label):
        print(f"Error: Invalid creds repo label '{label}'", file=sys.stderr)
        print("\nAllowed characters: letters, numbers, dots (.), underscores (_), hyphens (-)", file=sys.stderr)
        sys.exit(2)

    return label, path


def validate_generation(value: str) -> None:
    """
    Validate the generation label value is not empty.

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not value or value.strip() == "":
        print("Error: --generation cannot be empty", file=sys.stderr)
        print("\nThe generation is applied as a label value on every generated Secret.", file=sys.stderr)
        sys.exit(2)
