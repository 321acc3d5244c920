"""Command-line interface for wideload."""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import click
import yaml

from wideload.dashboard import Terminal
from wideload.orchestration import OrchestrationError, WorkloadOrchestrator
from wideload.store import CassandraStoreClient, StoreConnectionError, ensure_schema
from wideload.utils.config import (
    CONSISTENCY_LEVELS,
    DISTRIBUTIONS,
    PAYLOAD_KINDS,
    ConfigurationError,
    RunConfig,
    example_config,
)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger(__name__)


def configure_logging(log_file: str, log_level: str) -> None:
    """Send log output to ``log_file``; the terminal belongs to the dashboard."""
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=log_file,
        level=getattr(logging, log_level),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        force=True,
    )


def build_config(config_file: Optional[str], overrides: Dict[str, Dict[str, Any]]) -> RunConfig:
    """Load the optional YAML file and apply command-line overrides on top."""
    config = RunConfig.from_yaml_file(config_file) if config_file else RunConfig()
    return config.with_overrides(overrides)


@click.group()
@click.version_option(version="0.1.0", prog_name="wideload")
def cli():
    """wideload: workload generator and live dashboard for wide-column stores."""
    pass


@cli.command()
@click.option("--config", "config_file", type=click.Path(exists=True), help="YAML configuration file")
@click.option("--host", envvar="SCYLLADB_URL", help="Contact point as host[:port] [default: 127.0.0.1:9042]")
@click.option("--username", help="Username for password authentication")
@click.option("--password", help="Password for password authentication")
@click.option(
    "--consistency-level", envvar="CL",
    type=click.Choice(CONSISTENCY_LEVELS, case_sensitive=False),
    help="Consistency level for reads and writes [default: LOCAL_QUORUM]",
)
@click.option("--replication-factor", envvar="RF", type=int, help="Keyspace replication factor [default: 1]")
@click.option("--datacenter", envvar="DATACENTER", help="Preferred datacenter [default: datacenter1]")
@click.option("--tablets", type=int, help="Initial tablets per table (0 disables tablets)")
@click.option("--readers", type=int, help="Number of reader workers [default: 10]")
@click.option("--writers", type=int, help="Number of writer workers [default: 90]")
@click.option("--payload", type=click.Choice(PAYLOAD_KINDS), help="Workload kind [default: devices]")
@click.option("--cardinality", type=int, help="Number of candidate keys [default: 1000000]")
@click.option(
    "--distribution", type=click.Choice(DISTRIBUTIONS),
    help="Key access distribution [default: uniform]",
)
@click.option("--rate-min", type=float, help="Trough rate per worker in ops/s [default: 0]")
@click.option("--rate-max", type=float, help="Peak rate per worker in ops/s, 0 is unthrottled [default: 0]")
@click.option("--rate-period", type=float, help="Rate waveform period in seconds [default: 60]")
@click.option("--seed", type=int, help="Random seed for candidate keys and weight tables")
@click.option("--tick-interval", type=float, help="Dashboard refresh interval in seconds [default: 1]")
@click.option("--migrate/--no-migrate", default=None, help="Create keyspace and table before running")
@click.option(
    "--log-level", "-l",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level [default: INFO]",
)
@click.option("--log-file", help="Log file path [default: wideload.log]")
@click.option("--summary-json", help="Write the run summary to this JSON file")
@click.option("--history-csv", help="Write the retained metrics history to this CSV file")
def run(config_file, host, username, password, consistency_level, replication_factor, datacenter,
        tablets, readers, writers, payload, cardinality, distribution, rate_min, rate_max,
        rate_period, seed, tick_interval, migrate, log_level, log_file, summary_json, history_csv):
    """Drive read/write load against a cluster while showing live metrics."""
    overrides = {
        "connection": {
            "host": host,
            "username": username,
            "password": password,
            "consistency_level": consistency_level,
            "replication_factor": replication_factor,
            "datacenter": datacenter,
            "tablets": tablets,
            "migrate": migrate,
        },
        "workload": {
            "readers": readers,
            "writers": writers,
            "payload": payload,
            "cardinality": cardinality,
            "distribution": distribution,
            "rate_min": rate_min,
            "rate_max": rate_max,
            "rate_period": rate_period,
            "seed": seed,
            "tick_interval": tick_interval,
        },
        "output": {
            "log_level": log_level,
            "log_file": log_file,
            "summary_json_path": summary_json,
            "history_csv_path": history_csv,
        },
    }

    try:
        config = build_config(config_file, overrides)
    except ConfigurationError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)

    configure_logging(config.output.log_file, config.output.log_level)
    click.echo(f"Connecting to {config.connection.host}...")

    client = None
    try:
        client = CassandraStoreClient.connect(config.connection)

        orchestrator = WorkloadOrchestrator(config.workload, client, Terminal(), output=config.output)
        if config.connection.migrate:
            ensure_schema(client, orchestrator.payload, config.connection)

        summary = orchestrator.run()
    except (StoreConnectionError, OrchestrationError) as e:
        logger.error(f"Run failed: {e}")
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)
    except Exception as e:
        logger.exception("Unexpected error")
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)
    finally:
        if client is not None:
            client.close()

    click.echo("\nWorkload finished.")
    click.echo(f"Duration: {summary['duration_s']:.1f}s")
    click.echo(f"Writes: {summary['totals']['writes']} ({summary['totals']['write_errors']} errors)")
    click.echo(f"Reads: {summary['totals']['reads']} ({summary['totals']['read_errors']} errors)")
    latency = summary["latency_ms"]
    if latency["average"] is not None:
        click.echo(f"Latency: avg {latency['average']:.2f}ms, p99.9 {latency['p99_9']:.2f}ms")


@cli.command()
@click.option(
    "--output", "-o", default="wideload.yaml",
    help="Output file path"
)
def generate_config(output: str):
    """Generate an example configuration file."""
    output_path = Path(output)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w") as f:
        yaml.dump(example_config(), f, default_flow_style=False, sort_keys=False)

    click.echo(f"Generated example configuration at {output_path}")


@cli.command()
@click.argument("config_file", type=click.Path(exists=True))
def validate(config_file: str):
    """Validate a configuration file without running the workload."""
    click.echo(f"Validating configuration: {config_file}")

    try:
        config = RunConfig.from_yaml_file(config_file)
    except ConfigurationError as e:
        click.echo(click.style(f"✗ {e}", fg="red"))
        sys.exit(1)

    click.echo(click.style("✓ Configuration is valid", fg="green"))
    click.echo(
        f"  {config.workload.readers} readers, {config.workload.writers} writers, "
        f"payload {config.workload.payload}, distribution {config.workload.distribution}"
    )
    sys.exit(0)


if __name__ == "__main__":
    cli()
