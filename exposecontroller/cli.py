"""Command-line interface for exposecontroller."""

import argparse
import signal
import sys
from pathlib import Path
from typing import Optional

from .logging_config import setup_logging, get_logger

logger = get_logger(__name__)

CONFIG_SEARCH_PATHS = [Path("exposecontroller.yaml"), Path("/etc/exposecontroller/config.yaml")]


def load_config(path: Optional[str] = None):
    """Load a ControllerConfig from ``path`` or the first default location found.

    Raises:
        FileNotFoundError: ``path`` was given and does not exist
    """
    import yaml
    from .models import ControllerConfig

    config_path = None
    if path:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
    else:
        for candidate in CONFIG_SEARCH_PATHS:
            if candidate.exists():
                config_path = candidate
                break

    if config_path is None:
        logger.warning("No configuration file found, using defaults")
        return ControllerConfig()

    logger.debug("Loading configuration file", config_path=str(config_path))
    with open(config_path) as f:
        config_data = yaml.safe_load(f) or {}
    controller_config = ControllerConfig(**config_data)
    logger.info("Configuration loaded successfully", config_path=str(config_path))
    return controller_config


def _apply_overrides(controller_config, args: argparse.Namespace):
    overrides = {
        key: value
        for key, value in (
            ("namespace", args.namespace),
            ("exposer", args.exposer),
            ("domain", args.domain),
            ("resync_period", args.resync_period),
            ("kubeconfig_path", args.kubeconfig),
            ("context", args.context),
        )
        if value is not None
    }
    if not overrides:
        return controller_config
    return type(controller_config)(**{**controller_config.model_dump(), **overrides})


def run_command(args: argparse.Namespace) -> None:
    """Run the expose controller until SIGINT/SIGTERM."""
    import yaml
    from pydantic import ValidationError
    from .controller import ExposeController
    from .exceptions import ConfigurationError
    from .kube import create_api_client
    from .logging_config import log_function_entry

    setup_logging(args.verbose)
    log_function_entry(logger, "run_command", config=args.config, verbose=args.verbose)

    try:
        controller_config = _apply_overrides(load_config(args.config), args)
    except (OSError, ValidationError, yaml.YAMLError, TypeError) as e:
        logger.error("Failed to load configuration", error=str(e))
        print(f"Error loading configuration: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        api_client = create_api_client(controller_config)
        controller = ExposeController(controller_config, api_client)
    except ConfigurationError as e:
        logger.error("Failed to create controller", error=str(e))
        print(f"Error creating controller: {e}", file=sys.stderr)
        sys.exit(1)

    def _handle_signal(signum, frame):
        logger.info("Received signal", signal=signal.Signals(signum).name)
        controller.stop()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    controller.run()


def init_config_command(args: argparse.Namespace) -> None:
    """Generate a sample configuration file."""
    import yaml

    sample_config = {
        "namespace": "default",
        "exposer": "ingress",
        "domain": "example.com",
        "resync_period": 30,
        "watch_timeout": 300,
        "expose_label": {"key": "expose", "value": "true"},
        "kubeconfig_path": "~/.kube/config",
        "context": None,
        "record_events": True,
    }

    config_yaml = yaml.dump(sample_config, default_flow_style=False, sort_keys=False)

    if args.output:
        output_path = Path(args.output)
        output_path.write_text(config_yaml)
        print(f"Sample configuration written to {output_path}")
    else:
        print("Sample configuration:\n")
        print(config_yaml)


def validate_config_command(args: argparse.Namespace) -> None:
    """Validate a configuration file."""
    try:
        controller_config = load_config(args.config)
    except Exception as e:
        print(f"✗ Configuration file {args.config} is invalid: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"✓ Configuration file {args.config} is valid")

    print(f"\nConfiguration summary:")
    print(f"  Namespace: {controller_config.namespace or 'all namespaces'}")
    print(f"  Exposer: {controller_config.exposer}")
    print(f"  Domain: {controller_config.domain or 'None'}")
    print(f"  Resync period: {controller_config.resync_period}s")
    print(f"  Expose label: {controller_config.expose_label.key}={controller_config.expose_label.value}")


def version_command(args: argparse.Namespace) -> None:
    """Show version information."""
    from . import __version__, __author__
    print(f"Exposecontroller {__version__}")
    print(f"Author: {__author__}")


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Exposecontroller: expose labeled Kubernetes Services",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run command
    run_parser = subparsers.add_parser("run", help="Run the expose controller")
    run_parser.add_argument(
        "--config", "-c",
        help="Configuration file path"
    )
    run_parser.add_argument(
        "--namespace", "-n",
        help="Namespace to watch (default: all namespaces)"
    )
    run_parser.add_argument(
        "--exposer",
        help="Exposure strategy: ingress, route, loadbalancer or nodeport"
    )
    run_parser.add_argument(
        "--domain",
        help="Domain used for exposed host names"
    )
    run_parser.add_argument(
        "--resync-period",
        type=float,
        help="Seconds between full resyncs"
    )
    run_parser.add_argument(
        "--kubeconfig",
        help="Path to kubeconfig file (default: in-cluster config)"
    )
    run_parser.add_argument(
        "--context",
        help="Kubernetes context name"
    )
    run_parser.set_defaults(func=run_command)

    # Init-config command
    init_parser = subparsers.add_parser("init-config", help="Generate a sample configuration file")
    init_parser.add_argument(
        "--output", "-o",
        help="Output file path (default: stdout)"
    )
    init_parser.set_defaults(func=init_config_command)

    # Validate-config command
    validate_parser = subparsers.add_parser("validate-config", help="Validate a configuration file")
    validate_parser.add_argument(
        "--config", "-c",
        required=True,
        help="Configuration file path"
    )
    validate_parser.set_defaults(func=validate_config_command)

    # Version command
    version_parser = subparsers.add_parser("version", help="Show version information")
    version_parser.set_defaults(func=version_command)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
