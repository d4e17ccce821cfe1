import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from contenthub.rules.models import Rules

_FENCED_YAML = re.compile(r"^\s*```yaml[^\n]*\n(.*?)^\s*```", re.MULTILINE | re.DOTALL)


def load_rules(path: Path) -> Rules:
    """
    Read rules.yaml (or a markdown file with a ```yaml block) into Rules.

    FileNotFoundError when the file is missing; ValueError for bad YAML or
    values the Rules model rejects.
    """
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found at: {path}")

    text = path.read_text(encoding="utf-8")
    fenced = _FENCED_YAML.search(text)
    if fenced:
        text = fenced.group(1)

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in rules file: {e}") from e

    try:
        return Rules.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Rules validation failed:\n{e}") from e
