"""
sccconnector CLI - validate rule configs and check OTLP batches offline.

Commands:
    scc validate   Report every invalid rule pattern in a config file
    scc check      Run the connector over an OTLP JSON batch and print
                   the diagnostic logs it would forward
"""

import sys
from pathlib import Path
from typing import Optional

import click
import yaml
from google.protobuf import json_format
from opentelemetry.proto.logs.v1.logs_pb2 import LogsData
from opentelemetry.proto.metrics.v1.metrics_pb2 import MetricsData
from opentelemetry.proto.trace.v1.trace_pb2 import TracesData
from pydantic import ValidationError

from sccconnector.config import get_settings
from sccconnector.connector import Connector
from sccconnector.consumer import LogsSink
from sccconnector.errors import ConfigValidationError, EngineError
from sccconnector.logger import configure_logging
from sccconnector.rules.loader import ConfigLoader, GroupRegistryLoader, component_id
from sccconnector.rules.validator import check_config


def _load_config(config_path: str, name: str):
    try:
        return ConfigLoader(name=name).load(Path(config_path))
    except (KeyError, TypeError, ValidationError, yaml.YAMLError) as exc:
        click.echo(f"Error: cannot load {component_id(name)} from {config_path}: {exc}", err=True)
        sys.exit(2)


def _load_groups(groups_path: Optional[str]):
    if not groups_path:
        return None
    try:
        return GroupRegistryLoader().load(Path(groups_path))
    except (TypeError, ValidationError, yaml.YAMLError) as exc:
        click.echo(f"Error: cannot load groups from {groups_path}: {exc}", err=True)
        sys.exit(2)


@click.group()
@click.version_option(package_name="sccconnector")
@click.option("--log-level", default=None, help="Override SCC_LOG_LEVEL")
def main(log_level: Optional[str]):
    """sccconnector - check telemetry against expected-attribute rules."""
    settings = get_settings()
    configure_logging(level=log_level or settings.log_level, fmt=settings.log_format)


@main.command("validate")
@click.argument("config_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--name", "-n", default="", help="Connector instance name (scc/<name>)")
def validate_cmd(config_path: str, name: str):
    """Validate the rule patterns of a connector config.

    Example:
        scc validate collector.yaml --name full
    """
    config = _load_config(config_path, name)
    errors = check_config(config)
    if errors:
        for err in errors:
            click.echo(f"  ✗ {err}", err=True)
        click.echo(f"{len(errors)} invalid pattern(s)", err=True)
        sys.exit(1)

    click.echo(
        f"✓ {component_id(name)}: {len(config.trace)} trace, "
        f"{len(config.metrics)} metrics, {len(config.log)} log rule(s)"
    )


@main.command("check")
@click.argument("config_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--name", "-n", default="", help="Connector instance name (scc/<name>)")
@click.option("--traces", "traces_path", type=click.Path(exists=True, dir_okay=False), help="OTLP JSON traces batch")
@click.option("--metrics", "metrics_path", type=click.Path(exists=True, dir_okay=False), help="OTLP JSON metrics batch")
@click.option("--logs", "logs_path", type=click.Path(exists=True, dir_okay=False), help="OTLP JSON logs batch")
@click.option("--groups", "groups_path", type=click.Path(exists=True, dir_okay=False), help="Attribute group registry YAML")
@click.option("--fail-on-diagnostics", is_flag=True, help="Exit with error if any diagnostic is emitted")
def check_cmd(
    config_path: str,
    name: str,
    traces_path: Optional[str],
    metrics_path: Optional[str],
    logs_path: Optional[str],
    groups_path: Optional[str],
    fail_on_diagnostics: bool,
):
    """Run the connector over one OTLP JSON batch.

    Prints the diagnostic log batch as OTLP JSON on stdout.

    Example:
        scc check collector.yaml --traces spans.json --groups groups.yaml
    """
    inputs = [p for p in (traces_path, metrics_path, logs_path) if p]
    if len(inputs) != 1:
        click.echo("Error: pass exactly one of --traces, --metrics, --logs", err=True)
        sys.exit(2)

    config = _load_config(config_path, name)
    registry = _load_groups(groups_path)

    sink = LogsSink()
    try:
        connector = Connector(
            config,
            sink,
            service_name=get_settings().service_name,
            registry=registry,
        )
    except (ConfigValidationError, EngineError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    text = Path(inputs[0]).read_text()
    try:
        if traces_path:
            connector.consume_traces(json_format.Parse(text, TracesData()))
        elif metrics_path:
            connector.consume_metrics(json_format.Parse(text, MetricsData()))
        else:
            connector.consume_logs(json_format.Parse(text, LogsData()))
    except json_format.ParseError as exc:
        click.echo(f"Error: {inputs[0]} is not an OTLP JSON batch: {exc}", err=True)
        sys.exit(2)

    for logs in sink.all_logs():
        click.echo(json_format.MessageToJson(logs))

    count = sink.log_record_count()
    click.echo(f"{count} diagnostic record(s)", err=True)
    if fail_on_diagnostics and count:
        sys.exit(1)


if __name__ == "__main__":
    main()
