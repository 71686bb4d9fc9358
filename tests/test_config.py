"""Tests for configuration loading."""
import pytest

from cloudwatch_exporter.config import Config, ReporterConfig, load_config

EXAMPLE = """
global:
  log_level: DEBUG
exporter:
  port: 9200
  namespace: AWS/EC2
  metric_name: NetworkIn
  batch_size: 250
reporter:
  delay_s: 300
  period_s: 300
  stat: Average
aws:
  region: eu-west-1
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("LOG_LEVEL", "AWS_REGION", "CLOUDWATCH_NAMESPACE", "CLOUDWATCH_METRIC_NAME"):
        monkeypatch.delenv(name, raising=False)


def write(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return str(path)


def test_load_config(tmp_path):
    config = load_config(write(tmp_path, EXAMPLE))

    assert config.global_.log_level == "DEBUG"
    assert config.exporter.port == 9200
    assert config.exporter.namespace == "AWS/EC2"
    assert config.exporter.metric_name == "NetworkIn"
    assert config.exporter.batch_size == 250
    assert config.reporter.delay_s == 300
    assert config.reporter.range_s == 600
    assert config.reporter.stat == "Average"
    assert config.aws.region == "eu-west-1"


def test_defaults_for_empty_file(tmp_path):
    config = load_config(write(tmp_path, ""))

    assert config.exporter.namespace == "*"
    assert config.exporter.metric_name == "*"
    assert config.exporter.batch_size == 500
    assert config.reporter == ReporterConfig()


def test_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.setenv("AWS_REGION", "us-west-2")
    monkeypatch.setenv("CLOUDWATCH_NAMESPACE", "AWS/EBS")
    monkeypatch.setenv("CLOUDWATCH_METRIC_NAME", "*")

    config = load_config(write(tmp_path, EXAMPLE))

    assert config.global_.log_level == "WARNING"
    assert config.aws.region == "us-west-2"
    assert config.exporter.namespace == "AWS/EBS"
    assert config.exporter.metric_name == "*"


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "missing.yaml"))


@pytest.mark.parametrize("text", [
    "exporter:\n  batch_size: 501\n",
    "exporter:\n  batch_size: 0\n",
    "reporter:\n  period_s: 45\n",
    "global:\n  log_format: xml\n",
])
def test_invalid_config(tmp_path, text):
    with pytest.raises(ValueError):
        load_config(write(tmp_path, text))


def test_example_config_loads():
    from pathlib import Path

    config = load_config(str(Path(__file__).parent.parent / "configs" / "example.yaml"))
    assert isinstance(config, Config)
    assert config.exporter.namespace == "AWS/EC2"
