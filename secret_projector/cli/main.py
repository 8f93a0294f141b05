"""CLI entrypoint for secret-projector."""
import sys
import argparse
import logging

from .validators import validate_creds_repo_arg, validate_generation

VERSION = "0.1.0"

# Configure logging to stderr
logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
    stream=sys.stderr
)
logger = logging.getLogger(__name__)


def _configure_logging(args):
    """Raise log verbosity for --verbose / --debug."""
    if getattr(args, "debug", None):
        logging.getLogger().setLevel(logging.DEBUG)
    elif getattr(args, "verbose", None):
        logging.getLogger().setLevel(logging.INFO)


def _settings_from_args(args):
    """Resolve settings from the config file and CLI flags, CLI flags winning."""
    from secret_projector.projection.domains.config_loader import (
        _get_config_path,
        build_settings,
        load_config,
    )

    config_path, _ = _get_config_path(getattr(args, "config", None))
    file_config = load_config(config_path) if config_path else {}

    creds_repos = None
    if args.creds_repo:
        creds_repos = dict(validate_creds_repo_arg(value) for value in args.creds_repo)

    if args.generation is not None:
        validate_generation(args.generation)

    overrides = {
        "creds_repos": creds_repos,
        "manifests_path": args.manifests,
        "output_dir": getattr(args, "output", None),
        "creds_encryption_key_file": args.creds_encryption_key,
        "creds_key_decryption_key_file": args.creds_key_decryption_key,
        "add_deploy_labels": args.label_secrets,
        "generation": args.generation,
        "label_managed_key": args.label_managed_key,
        "label_version_key": args.label_version_key,
        "debug": args.debug,
        "show_secrets": getattr(args, "debug_show_secrets", None),
    }
    return build_settings(file_config, overrides)


def cmd_version(args):
    """Show version information."""
    print(f"secret-projector {VERSION}")


def cmd_project(args):
    """Project all manifests into Secrets."""
    from secret_projector.projection.domains.config_loader import validate_settings
    from secret_projector.projection.workflows.projector import run
    from secret_projector.projection.workflows.render import render_secret_yaml

    settings = _settings_from_args(args)
    validate_settings(settings)
    logger.info(f"secret-projector version={VERSION}")
    for label, path in settings.creds_repos.items():
        logger.debug(f"creds {label} path: {path}")
    logger.debug(f"projection mappings path: {settings.manifests_path}")

    secrets = run(settings)

    if settings.output_dir:
        print(f"Wrote {len(secrets)} Secrets to {settings.output_dir}")
    elif settings.debug and settings.show_secrets:
        for secret in secrets:
            print(f"---\n{render_secret_yaml(secret)}", end="")
    else:
        print(f"Projected {len(secrets)} Secrets")


def cmd_validate(args):
    """Load all manifests without projecting them."""
    from secret_projector.projection.domains.config_loader import ConfigError
    from secret_projector.projection.workflows.discovery import load_projection_mappings

    settings = _settings_from_args(args)
    if not settings.manifests_path:
        raise ConfigError("manifests requires an argument")

    mappings = load_projection_mappings(settings)
    print(f"Loaded {len(mappings)} projection mappings")
    for mapping in mappings:
        print(f"  {mapping}")


def cmd_config_show(args):
    """Show current config file path."""
    from secret_projector.projection.domains.config_loader import _get_config_path, default_config_path

    config_path, source = _get_config_path(args.config)

    if config_path:
        print(f"Config path: {config_path}")
        print(f"Source: {source}")
    else:
        print(f"Config path: {default_config_path()}")
        print("Source: default (file not found)")


def _add_settings_arguments(parser, projecting=True):
    parser.add_argument(
        "--config",
        help="Path to config file (default: $SECRET_PROJECTOR_CONFIG or ~/.config/secret-projector/config.yml)"
    )
    parser.add_argument(
        "--manifests",
        help="Path to projection mapping YAMLs (required)"
    )
    parser.add_argument(
        "--creds-repo",
        action="append",
        metavar="LABEL=PATH",
        help="label=<path> pair identifying a source credentials repository "
             "(e.g. production=/path/to/repo/production). Repeatable"
    )
    parser.add_argument(
        "--creds-encryption-key",
        help="Path to the creds encryption key file (optional, depends on your encryption modules in use)"
    )
    parser.add_argument(
        "--creds-key-decryption-key",
        help="Path to load decryption keys from (optional, depends on your encryption modules in use)"
    )
    parser.add_argument(
        "--generation",
        help="Generation label used when annotating Secrets (default: current unix time)"
    )
    parser.add_argument(
        "--label-managed-key",
        help="Label all generated Secrets with this key=true"
    )
    parser.add_argument(
        "--label-version-key",
        help="Label all generated Secrets with this key, using the value of --generation"
    )
    parser.add_argument(
        "--no-label-secrets",
        dest="label_secrets",
        action="store_const",
        const=False,
        default=None,
        help="Do not label generated Secrets with the managed and version labels"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="Debug logging"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Informational logging"
    )
    if projecting:
        parser.add_argument(
            "--output",
            help="Write generated Secrets to this directory"
        )
        parser.add_argument(
            "--debug-show-secrets",
            action="store_true",
            default=None,
            help="Print generated Secrets YAML contents (only with --debug, default: on)"
        )
        parser.add_argument(
            "--no-debug-show-secrets",
            dest="debug_show_secrets",
            action="store_const",
            const=False,
            help="Do not print generated Secrets YAML contents under --debug"
        )


def main():
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Runtime errors (bad manifest, missing file, projection failure, etc.)
        2 - Usage errors (invalid arguments)
    """
    parser = argparse.ArgumentParser(
        prog="secret-projector",
        description="secret-projector CLI - project creds repository files into Kubernetes Secrets",
        epilog="""
Exit codes:
  0 - Success
  1 - Runtime error (bad manifest, missing file, projection failure, etc.)
  2 - Usage error (invalid arguments)

Environment variables:
  SECRET_PROJECTOR_CONFIG - Path to config file

Configuration:
  Default location: ~/.config/secret-projector/config.yml
  View current: Run 'secret-projector config show'
  Command line flags override config file values.
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # version command
    _version_parser = subparsers.add_parser(
        "version",
        help="Show version information",
        description="Display the current version of secret-projector"
    )

    # project command
    project_parser = subparsers.add_parser(
        "project",
        help="Project manifests into Secrets",
        description="""
Load every projection mapping under --manifests, extract its data sources
from the creds repository named by its 'repo' field, encrypt entries that ask
for it, and render the results as Kubernetes Secrets.

Nothing is written unless every mapping projects successfully.
        """
    )
    _add_settings_arguments(project_parser)

    # validate command
    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate manifests",
        description="Load every projection mapping under --manifests and report errors, without projecting"
    )
    _add_settings_arguments(validate_parser, projecting=False)

    # config command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="Inspect secret-projector configuration"
    )
    config_subparsers = config_parser.add_subparsers(dest="config_command")

    # config show command
    config_show_parser = config_subparsers.add_parser(
        "show",
        help="Show current config path",
        description="""
Display the current configuration file path and its source.

Sources:
  - argument: Path given with --config
  - environment: Path from SECRET_PROJECTOR_CONFIG
  - default: Default XDG location (~/.config/secret-projector/config.yml)
        """
    )
    config_show_parser.add_argument(
        "--config",
        help="Path to config file"
    )

    args = parser.parse_args()

    # If no command provided, show help and exit with usage error code
    if not args.command:
        parser.print_help()
        sys.exit(2)

    _configure_logging(args)

    # Route to command handlers
    try:
        if args.command == "version":
            cmd_version(args)
        elif args.command == "project":
            cmd_project(args)
        elif args.command == "validate":
            cmd_validate(args)
        elif args.command == "config":
            if args.config_command == "show":
                cmd_config_show(args)
            else:
                config_parser.print_help()
                sys.exit(2)
        else:
            parser.print_help()
            sys.exit(2)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
