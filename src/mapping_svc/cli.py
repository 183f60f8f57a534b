#!/usr/bin/env python3
"""
CLI tool for resolving class metadata.

Usage:
    mapping-svc --config config.yaml describe app.models.Employee
    mapping-svc --config config.yaml list
    mapping-svc --config config.yaml validate
    mapping-svc --config config.yaml warmup
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from .bootstrap import build_factory, configure_logging
from .config import Config
from .errors import MetadataError
from .metadata.factory import ClassMetadataFactory
from .metadata.strategy import AutoGenerate
from .metadata.types import ClassMetadata


def print_json(data: Any, indent: int = 2) -> None:
    print(json.dumps(data, indent=indent, default=str))


def print_metadata(metadata: ClassMetadata) -> None:
    """Pretty print one class's metadata."""
    print(f"\n{metadata.class_name} ({metadata.kind.value})")
    if metadata.parent is not None:
        chain = " -> ".join(m.class_name for m in metadata.ancestors())
        print(f"  extends: {chain}")
    if metadata.table_name:
        print(f"  table: {metadata.table_name}")
    if metadata.is_in_hierarchy:
        print(f"  inheritance: {metadata.inheritance_type.value} (root {metadata.root_class_name})")
        print(f"  discriminator: {metadata.discriminator_column} = {metadata.discriminator_value}")

    if metadata.fields:
        print("  fields:")
        for f in metadata.fields.values():
            marker = " [id]" if f.id else ""
            origin = f"  (from {f.declared_in})" if metadata.is_inherited(f.name) else ""
            print(f"    {f.name}: {f.type} -> {f.column}{marker}{origin}")

    if metadata.associations:
        print("  associations:")
        for a in metadata.associations.values():
            origin = f"  (from {a.declared_in})" if metadata.is_inherited(a.name) else ""
            print(f"    {a.name}: {a.type} -> {a.target}{origin}")


def cmd_describe(factory: ClassMetadataFactory, args) -> int:
    metadata = factory.get_metadata_for(args.class_name)
    if args.json:
        print_json(metadata.to_dict())
    else:
        print_metadata(metadata)
    return 0


def cmd_list(factory: ClassMetadataFactory, args) -> int:
    all_metadata = factory.get_all_metadata()
    if args.json:
        print_json([
            {"class_name": m.class_name, "kind": m.kind.value, "parent": m.parent_class_name, "table": m.table_name}
            for m in all_metadata
        ])
        return 0

    for m in all_metadata:
        parent = f" extends {m.parent_class_name}" if m.parent is not None else ""
        table = f" [{m.table_name}]" if m.table_name else ""
        print(f"{m.class_name} ({m.kind.value}){parent}{table}")
    print(f"\n{len(all_metadata)} classes")
    return 0


def cmd_validate(factory: ClassMetadataFactory, args) -> int:
    """Validate every mapped class with its ancestors and report all failures, not just the first."""
    failures: dict[str, str] = {}
    for class_name in factory.driver.get_all_class_names():
        try:
            factory.validate_hierarchy(class_name)
        except MetadataError as e:
            failures[class_name] = str(e)

    if args.json:
        print_json({"valid": not failures, "failures": failures})
    else:
        for class_name, message in failures.items():
            print(f"FAIL {class_name}\n  {message}", file=sys.stderr)
        total = len(factory.driver.get_all_class_names())
        print(f"{total - len(failures)}/{total} classes valid")
    return 1 if failures else 0


def cmd_warmup(factory: ClassMetadataFactory, args) -> int:
    """Generate every artifact; the factory is built with the ``always`` policy."""
    all_metadata = factory.get_all_metadata()
    print(f"Generated {len(all_metadata)} metadata artifacts")
    return 0


COMMANDS = {
    "describe": cmd_describe,
    "list": cmd_list,
    "validate": cmd_validate,
    "warmup": cmd_warmup,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mapping-svc",
        description="Resolve and inspect class mapping metadata",
    )
    parser.add_argument(
        "--config", "-c",
        default="config.yaml",
        help="Config file (YAML or JSON, default: config.yaml)",
    )
    parser.add_argument(
        "--mapping", "-m",
        help="Mapping file or directory (overrides mapping.definition_file)",
    )
    parser.add_argument("--json", action="store_true", help="Output JSON")

    subparsers = parser.add_subparsers(dest="command", required=True)

    describe = subparsers.add_parser("describe", help="Show the metadata of a class")
    describe.add_argument("class_name", help="Fully qualified class name")

    subparsers.add_parser("list", help="List the metadata of all mapped classes")
    subparsers.add_parser("validate", help="Resolve all classes and report failures")
    subparsers.add_parser("warmup", help="Regenerate all metadata artifacts")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = Config.load(args.config) if Path(args.config).exists() else Config()
    if args.mapping:
        config.mapping.definition_file = args.mapping
    configure_logging(config)

    policy = AutoGenerate.ALWAYS if args.command == "warmup" else None
    try:
        factory = build_factory(config, policy=policy)
        return COMMANDS[args.command](factory, args)
    except (MetadataError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
