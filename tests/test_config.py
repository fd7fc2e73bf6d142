#!/usr/bin/env python3
"""Tests for shop configuration."""

from pathlib import Path

import pytest

from garage.config import Config, load_config


class TestConfig:
    """Tests for Config defaults and labels."""

    def test_defaults(self):
        config = Config()
        assert config.tax_rate == 0.15
        assert config.reminder_threshold_days == 90
        assert config.visit_id_width == 5
        assert config.search_limit == 50
        assert config.data_dir == Path("data")

    @pytest.mark.parametrize("rate,label", [(0.15, "Tax (15%)"), (0.075, "Tax (7.5%)")])
    def test_tax_label_follows_rate(self, rate, label):
        assert Config(tax_rate=rate).tax_label == label


class TestLoadConfig:
    """Tests for load_config."""

    def test_no_file_no_env(self):
        config = load_config(environ={})
        assert config.tax_rate == 0.15

    def test_reads_yaml_file(self, tmp_path):
        path = tmp_path / "shop.yaml"
        path.write_text(
            """
dataDir: /srv/shop
taxRate: 0.05
reminderThresholdDays: 120
logLevel: info
unknownKey: ignored
"""
        )
        config = load_config(path, environ={})
        assert config.data_dir == Path("/srv/shop")
        assert config.tax_rate == 0.05
        assert config.reminder_threshold_days == 120
        assert config.log_level == "INFO"

    def test_environment_wins(self, tmp_path):
        path = tmp_path / "shop.yaml"
        path.write_text("taxRate: 0.05\n")
        config = load_config(
            path, environ={"GARAGE_TAX_RATE": "0.2", "GARAGE_DATA_DIR": "/tmp/shop"}
        )
        assert config.tax_rate == 0.2
        assert config.data_dir == Path("/tmp/shop")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "shop.yaml"
        path.write_text("")
        assert load_config(path, environ={}).visit_id_width == 5
