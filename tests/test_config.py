from pathlib import Path

import pytest
import yaml

from ledger_reconcile.config import (
    ReconConfig,
    generate_default_config,
    get_default_config,
    load_config,
)
from ledger_reconcile.utils.exceptions import ConfigurationError


def write_yaml(path: Path, data) -> Path:
    path.write_text(yaml.dump(data), encoding="utf-8")
    return path


class TestLoadConfig:
    def test_defaults_without_file(self):
        config = load_config(None)
        assert config == ReconConfig()
        assert config.matching.date_window_days == 3
        assert config.input.ledger.cleared_marker == "*"
        assert config.config_file_path is None

    def test_defaults_match_models(self):
        assert ReconConfig(**get_default_config()) == ReconConfig()

    def test_partial_override_keeps_other_defaults(self, tmp_path):
        path = write_yaml(
            tmp_path / "config.yaml",
            {"matching": {"date_window_days": 5}, "input": {"ledger": {"pending_marker": "?"}}},
        )
        config = load_config(path)

        assert config.matching.date_window_days == 5
        assert config.matching.amount_epsilon == pytest.approx(1e-6)
        assert config.input.ledger.pending_marker == "?"
        assert config.input.ledger.cleared_marker == "*"
        assert config.config_file_path == str(path)

    def test_column_mappings_replace_defaults(self, tmp_path):
        path = write_yaml(
            tmp_path / "config.yaml",
            {"input": {"statement": {"column_mappings": {"date": "Posted", "debit": "Out"}}}},
        )
        mappings = load_config(path).input.statement.column_mappings
        assert mappings == {"date": "Posted", "debit": "Out"}

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path).resolution.ambiguous_policy == "prompt"


class TestInvalidConfig:
    @pytest.mark.parametrize(
        "data",
        [
            {"matching": {"date_window_days": -1}},
            {"matching": {"amount_epsilon": 0}},
            {"resolution": {"ambiguous_policy": "sometimes"}},
            {"input": {"ledger": {"cleared_marker": "**"}}},
            {"input": {"statement": {"on_malformed_row": "ignore"}}},
        ],
    )
    def test_bad_values(self, tmp_path, data):
        path = write_yaml(tmp_path / "config.yaml", data)
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_bad_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("matching: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_config(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(path)


def test_generated_config_loads_back(tmp_path):
    path = tmp_path / "nested" / "config.yaml"
    generate_default_config(path)

    assert path.read_text(encoding="utf-8").startswith("# Ledger statement reconciliation")
    loaded = load_config(path)
    assert loaded.model_dump(exclude={"config_file_path"}) == ReconConfig().model_dump(
        exclude={"config_file_path"}
    )
