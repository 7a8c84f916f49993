import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from audioguide.rules.models import Rules

RULES_ENV_VAR = "AUDIOGUIDE_RULES"


class RulesError(ValueError):
    """Raised when the rules file cannot be parsed or validated."""


def resolve_rules_path(explicit: str | Path | None = None) -> Path:
    """Explicit path, then $AUDIOGUIDE_RULES, then ./rules.yaml."""
    if explicit is not None:
        return Path(explicit)
    return Path(os.environ.get(RULES_ENV_VAR, "rules.yaml"))


def load_rules(path: Path) -> Rules:
    """
    Load and validate the rules file.
    Raises FileNotFoundError if file missing.
    Raises RulesError if the YAML or the schema is invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found at: {path}")

    with open(path) as f:
        content = f.read()

    # Rules may live inside a ```yaml fenced block of a markdown document
    lines = content.splitlines()
    yaml_lines = []
    in_block = False
    found_block = False

    for line in lines:
        s_line = line.strip()
        if s_line.startswith("```yaml"):
            in_block = True
            found_block = True
            continue
        if in_block and s_line.startswith("```"):
            break

        if in_block:
            yaml_lines.append(line)

    clean_content = "\n".join(yaml_lines) if found_block else content

    try:
        data = yaml.safe_load(clean_content)
    except yaml.YAMLError as e:
        raise RulesError(f"Invalid YAML syntax in rules file: {e}") from e

    if not isinstance(data, dict):
        raise RulesError("Rules file must contain a mapping at the top level")

    try:
        return Rules.model_validate(data)
    except ValidationError as e:
        raise RulesError(f"Rules validation failed:\n{e}") from e
