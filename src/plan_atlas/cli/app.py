"""Command-line interface for generating visualization documents."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Mapping, Sequence

from ..adapters import PlanLoaderError
from ..builders import GraphBuilder, ResourceOverviewBuilder
from ..errors import PipelineError
from ..service import DOCUMENT_KINDS, AssetSnapshot, VisualizationService
from ..settings import Settings, SettingsError, load_settings

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Construct the CLI argument parser."""

    parser = argparse.ArgumentParser(
        prog="plan-atlas",
        description="Derive overview, map and graph documents from a Terraform plan",
    )
    subparsers = parser.add_subparsers(dest="command")

    generate_parser = subparsers.add_parser(
        "generate", help="Generate the plan, rso, map and graph documents."
    )
    generate_parser.add_argument(
        "path",
        type=Path,
        nargs="?",
        default=None,
        help="Path to the Terraform configuration directory.",
    )
    generate_parser.add_argument(
        "--plan-json",
        type=Path,
        default=None,
        help="Path to an existing Terraform plan exported with `terraform show -json`.",
    )
    generate_parser.add_argument(
        "--plan-file",
        type=Path,
        default=None,
        help="Path to a binary Terraform plan file generated via `terraform plan -out`.",
    )
    generate_parser.add_argument(
        "--config-json",
        type=Path,
        default=None,
        help=(
            "Standalone configuration document to use instead of the plan's "
            "embedded configuration block."
        ),
    )
    generate_parser.add_argument(
        "--var-file",
        dest="var_files",
        action="append",
        type=Path,
        default=None,
        help="Additional Terraform variable files to pass when generating a plan.",
    )
    generate_parser.add_argument(
        "--env",
        dest="env",
        action="append",
        default=None,
        metavar="KEY=VALUE",
        help="Environment variables to provide to Terraform during execution.",
    )
    generate_parser.add_argument(
        "--inherit-env",
        action="store_true",
        help="Inherit the current environment instead of a minimal PATH-only sandbox.",
    )
    generate_parser.add_argument(
        "--settings",
        type=Path,
        default=None,
        help="YAML settings file providing defaults for the options below.",
    )
    generate_parser.add_argument("--name", default=None, help="Configuration name.")
    generate_parser.add_argument(
        "--terraform-bin",
        default=None,
        help="Name or path of the Terraform executable to use when generating plans.",
    )
    generate_parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Directory the documents are written to (one sub-directory per name).",
    )
    generate_parser.add_argument(
        "--print",
        dest="print_kind",
        choices=list(DOCUMENT_KINDS),
        default=None,
        help="Print a single document to stdout instead of writing files.",
    )
    generate_parser.add_argument(
        "--no-module-edges",
        dest="collapse_modules",
        action="store_false",
        default=None,
        help="Skip the module-collapsed edge set in the graph document.",
    )
    generate_parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (DEBUG, INFO, WARNING, ERROR).",
    )

    return parser


def _parse_env_values(values: Sequence[str] | None) -> Mapping[str, str]:
    if not values:
        return {}

    env: dict[str, str] = {}
    for value in values:
        if "=" not in value:
            raise ValueError(f"Environment variables must be in KEY=VALUE form: {value}")
        key, raw = value.split("=", 1)
        env[key] = raw
    return env


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_service(settings: Settings) -> VisualizationService:
    """Create a service wired with the builders configured by ``settings``."""

    return VisualizationService(
        overview_builder=ResourceOverviewBuilder(
            sensitive_placeholder=settings.sensitive_placeholder
        ),
        graph_builder=GraphBuilder(collapse_modules=settings.collapse_modules),
    )


def save_documents(snapshot: AssetSnapshot, output_dir: Path) -> list[Path]:
    """Write every document as ``<output_dir>/<name>/<name>-<kind>.json``."""

    target_dir = output_dir / snapshot.name
    target_dir.mkdir(parents=True, exist_ok=True)

    written: list[Path] = []
    for kind in DOCUMENT_KINDS:
        path = target_dir / f"{snapshot.name}-{kind}.json"
        path.write_text(json.dumps(snapshot.document(kind), indent=2), encoding="utf-8")
        written.append(path)
    return written


def _resolve_settings(args: argparse.Namespace) -> Settings:
    settings = load_settings(args.settings)
    return settings.merged(
        {
            "name": args.name,
            "working_dir": args.path,
            "terraform_bin": args.terraform_bin,
            "output_dir": args.output_dir,
            "collapse_modules": args.collapse_modules,
            "log_level": args.log_level,
        }
    )


def _handle_generate(args: argparse.Namespace) -> int:
    try:
        env = _parse_env_values(args.env)
        settings = _resolve_settings(args)
    except (ValueError, SettingsError) as exc:
        print(f"Error: {exc}")
        return 2

    configure_logging(settings.log_level)
    service = create_service(settings)

    working_dir = settings.working_dir.resolve()
    try:
        snapshot = service.generate(
            working_dir,
            name=settings.name,
            plan_json_path=args.plan_json.resolve() if args.plan_json else None,
            plan_file_path=args.plan_file.resolve() if args.plan_file else None,
            config_path=args.config_json.resolve() if args.config_json else None,
            var_files=[path.resolve() for path in args.var_files] if args.var_files else None,
            env=env,
            inherit_environment=args.inherit_env,
            terraform_bin=settings.terraform_bin,
        )
    except (PlanLoaderError, PipelineError) as exc:
        logger.error("Unable to generate assets: %s", exc)
        print(f"Error: {exc}")
        return 2

    if args.print_kind:
        print(json.dumps(snapshot.document(args.print_kind), indent=2))
        return 0

    for path in save_documents(snapshot, settings.output_dir):
        logger.info("Saved %s", path)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point used by tests and the ``python -m`` invocation."""

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "generate":
        return _handle_generate(args)

    parser.print_help()
    return 0


def run() -> None:  # pragma: no cover - thin wrapper for module execution
    """Execute the CLI and exit with the produced status code."""

    raise SystemExit(main())


if __name__ == "__main__":  # pragma: no cover - module execution guard
    run()
