from pathlib import Path

from app.structuring.exceptions import StructuringError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"


def load_prompt_template(path: Path | None = None) -> str:
    """Load the receipt structuring prompt template.

    Defaults to the bundled ``receipt_prompt.txt``; the template expects the
    ``{receipt_text}`` and ``{json_schema}`` placeholders.

    Raises:
        StructuringError: if the file cannot be read.
    """
    if path is None:
        path = _DEFAULT_PROMPT_DIR / "receipt_prompt.txt"
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise StructuringError(f"Failed to load prompt template: {exc}") from exc


def load_json_schema(path: Path | None = None) -> str:
    """Load the JSON schema the model answer must follow.

    Raises:
        StructuringError: if the file cannot be read.
    """
    if path is None:
        path = _DEFAULT_PROMPT_DIR / "receipt_schema.json"
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise StructuringError(f"Failed to load JSON schema: {exc}") from exc
