"""Configuration for ledger parsing, statement import, matching and reporting."""

from pathlib import Path
from typing import Any, Literal, Optional, Union
import logging

import yaml
from pydantic import BaseModel, Field, ValidationError

from .utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class LedgerInputConfig(BaseModel):
    """How the ledger journal is read."""

    encoding: str = "utf-8"
    cleared_marker: str = Field(default="*", min_length=1, max_length=1)
    pending_marker: str = Field(default="!", min_length=1, max_length=1)
    # Postings on these accounts make up the amount compared with the statement
    account_patterns: list[str] = Field(
        default_factory=lambda: ["Assets:*", "Liabilities:*"]
    )


class StatementInputConfig(BaseModel):
    """How the statement CSV is read."""

    encoding: str = "utf-8"
    delimiter: str = ","
    has_header: bool = True
    date_formats: list[str] = Field(
        default_factory=lambda: ["%Y-%m-%d", "%Y/%m/%d", "%m/%d/%Y"]
    )
    # Logical column -> header name (or 0-based position without a header)
    column_mappings: dict[str, Union[str, int]] = Field(
        default_factory=lambda: {
            "date": "Date",
            "amount": "Amount",
            "description": "Description",
        }
    )
    invert_amounts: bool = False
    on_malformed_row: Literal["skip", "fail"] = "skip"


class InputConfig(BaseModel):
    """Configuration for input file parsing."""

    ledger: LedgerInputConfig = Field(default_factory=LedgerInputConfig)
    statement: StatementInputConfig = Field(default_factory=StatementInputConfig)


class MatchingConfig(BaseModel):
    """Configuration for the matcher."""

    date_window_days: int = Field(default=3, ge=0)
    amount_epsilon: float = Field(default=0.000001, gt=0)


class ResolutionConfig(BaseModel):
    """How ambiguous rows are resolved."""

    ambiguous_policy: Literal["prompt", "skip", "first"] = "prompt"
    show_lower_tiers: bool = False


class SheetConfig(BaseModel):
    """Configuration for a report sheet."""

    enabled: bool = True
    name: str


class SheetsConfig(BaseModel):
    """Configuration for all report sheets."""

    summary: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Summary"))
    matched: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Matched"))
    unmatched: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Unmatched"))
    skipped_rows: SheetConfig = Field(
        default_factory=lambda: SheetConfig(name="Skipped Rows")
    )


class OutputConfig(BaseModel):
    """Configuration for output."""

    diff_context_lines: int = Field(default=3, ge=0)
    sheets: SheetsConfig = Field(default_factory=SheetsConfig)


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    # Rotating log file, in addition to the console
    file: Optional[str] = None


class ReconConfig(BaseModel):
    """Main configuration model for reconciliation."""

    input: InputConfig = Field(default_factory=InputConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    resolution: ResolutionConfig = Field(default_factory=ResolutionConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file_path: Optional[str] = None


def get_default_config() -> dict[str, Any]:
    """Return the default configuration as a dictionary."""
    return {
        "input": {
            "ledger": {
                "encoding": "utf-8",
                "cleared_marker": "*",
                "pending_marker": "!",
                "account_patterns": ["Assets:*", "Liabilities:*"],
            },
            "statement": {
                "encoding": "utf-8",
                "delimiter": ",",
                "has_header": True,
                "date_formats": ["%Y-%m-%d", "%Y/%m/%d", "%m/%d/%Y"],
                "column_mappings": {
                    "date": "Date",
                    "amount": "Amount",
                    "description": "Description",
                },
                "invert_amounts": False,
                "on_malformed_row": "skip",
            },
        },
        "matching": {
            "date_window_days": 3,
            "amount_epsilon": 0.000001,
        },
        "resolution": {
            "ambiguous_policy": "prompt",
            "show_lower_tiers": False,
        },
        "output": {
            "diff_context_lines": 3,
            "sheets": {
                "summary": {"enabled": True, "name": "Summary"},
                "matched": {"enabled": True, "name": "Matched"},
                "unmatched": {"enabled": True, "name": "Unmatched"},
                "skipped_rows": {"enabled": True, "name": "Skipped Rows"},
            },
        },
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            "file": None,
        },
    }


def load_config(config_path: Optional[Path] = None) -> ReconConfig:
    """
    Load configuration from a YAML file or use defaults.

    Args:
        config_path: Path to YAML configuration file (optional)

    Returns:
        ReconConfig object with loaded or default settings

    Raises:
        ConfigurationError: If the file is not valid YAML or has bad values
    """
    config_dict = get_default_config()

    if config_path and config_path.exists():
        logger.info(f"Loading configuration from: {config_path}")
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                user_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(user_config, dict):
            raise ConfigurationError(
                f"Configuration file {config_path} must contain a mapping"
            )

        # Column mappings replace the defaults instead of merging with them
        statement_input = user_config.get("input", {}).get("statement", {})
        if isinstance(statement_input, dict) and "column_mappings" in statement_input:
            config_dict["input"]["statement"]["column_mappings"] = {}

        config_dict = _deep_merge(config_dict, user_config)
        config_dict["config_file_path"] = str(config_path)
    else:
        logger.info("Using default configuration")

    try:
        return ReconConfig(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge on top

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def generate_default_config(output_path: Path) -> None:
    """
    Generate a default configuration file.

    Args:
        output_path: Path to write the configuration file
    """
    config_dict = get_default_config()

    yaml_content = """# Ledger statement reconciliation configuration
# Generated configuration file - customize as needed

"""
    yaml_content += yaml.dump(config_dict, default_flow_style=False, sort_keys=False)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(yaml_content)

    logger.info(f"Generated configuration file: {output_path}")
