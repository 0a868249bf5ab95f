from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

import uvicorn
import yaml

from ocel_workbench.core.catalog import PluginCatalog
from ocel_workbench.core.errors import WorkbenchError
from ocel_workbench.core.progress import ProgressEvent
from ocel_workbench.core.utils import (
    env_flag,
    file_logger,
    get_appdata_dir,
    get_plugins_dir,
    json_dumps,
)
from ocel_workbench.core.workbench import Workbench


def load_settings(path: str | None) -> Any:
    if not path:
        return []
    content = Path(path).read_text(encoding="utf-8")
    if path.endswith(".json"):
        return json.loads(content)
    return yaml.safe_load(content)


def _parameter_groups(settings: Any) -> list[dict[str, Any]]:
    """Accept either a bare list of groups or {"parameters": [...]}."""

    if settings is None:
        return []
    if isinstance(settings, dict):
        settings = settings.get("parameters") or []
    if not isinstance(settings, list):
        raise SystemExit("Settings must be a list of parameter groups")
    return settings


def _print_progress(event: ProgressEvent) -> None:
    print(f"[STEP {event.current_step}/{event.total_steps}] {event.current_task}", flush=True)


def _workbench() -> Workbench:
    log_path = get_appdata_dir() / "logs" / "workbench.log"
    return Workbench(get_plugins_dir(), logger=file_logger(log_path))


def cmd_list_plugins() -> None:
    catalog = PluginCatalog(get_plugins_dir())
    for descriptor in catalog.discover():
        print(f"{descriptor.enumid}: {descriptor.name} ({descriptor.plugin_type})")


def cmd_plugins_validate(plugin_id: str | None = None) -> None:
    catalog = PluginCatalog(get_plugins_dir())
    descriptors = catalog.discover()
    failures: list[str] = []

    for err in catalog.discovery_errors:
        failures.append(f"{err.plugin_id}: discovery error: {err.message}")

    selected = descriptors
    if plugin_id:
        selected = [d for d in descriptors if plugin_id in (d.plugin_id, d.enumid)]
        if not selected:
            raise SystemExit(f"Unknown plugin id: {plugin_id}")
        failures = [f for f in failures if f.startswith(f"{plugin_id}:")]

    for descriptor in selected:
        try:
            plugin = catalog.load_plugin(descriptor)
            if not hasattr(plugin, "run"):
                raise TypeError("Missing run() method")
        except Exception as exc:
            failures.append(f"{descriptor.plugin_id}: {type(exc).__name__}: {exc}")

    for line in sorted(failures):
        print(line)
    if failures:
        raise SystemExit(1)
    print("OK")


def cmd_import(file_path: str) -> None:
    workbench = _workbench()
    entity_id = workbench.import_entity(file_path)
    print(json_dumps({"id": entity_id, **workbench.get_instance_info(entity_id)}))


def cmd_run(
    file_paths: list[str],
    plugin: str,
    settings_path: str | None,
    out_path: str | None,
) -> None:
    """Import files, activate one plugin over them and optionally export the result.

    Imported entities fill input slots by kind, in the order given.
    """

    workbench = _workbench()
    inputs: dict[str, list[int]] = {}
    for file_path in file_paths:
        entity_id = workbench.import_entity(file_path)
        kind = workbench.store.get(entity_id).kind.value
        inputs.setdefault(kind, []).append(entity_id)
    request = {
        "enumid": plugin,
        "inputs": inputs,
        "parameters": _parameter_groups(load_settings(settings_path)),
    }
    observer = _print_progress if env_flag("OCEL_WORKBENCH_CLI_PROGRESS") else None
    entity_id = workbench.activate_plugin(request, observer=observer)
    if out_path:
        workbench.export_entity(entity_id, out_path)
    print(entity_id)


def cmd_serve(host: str, port: int) -> None:
    from ocel_workbench.ui.server import app

    allow_network = env_flag("OCEL_WORKBENCH_ALLOW_NETWORK")
    if not allow_network and host not in {"127.0.0.1", "localhost", "::1"}:
        raise SystemExit("Network disabled: use localhost or set OCEL_WORKBENCH_ALLOW_NETWORK=1")
    uvicorn.run(app, host=host, port=port)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ocel-workbench")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("list-plugins")

    plugins_parser = sub.add_parser("plugins")
    plugins_sub = plugins_parser.add_subparsers(dest="plugins_command")
    plugins_validate_parser = plugins_sub.add_parser("validate")
    plugins_validate_parser.add_argument("--plugin-id")

    import_parser = sub.add_parser("import")
    import_parser.add_argument("--file", required=True)

    run_parser = sub.add_parser("run")
    run_parser.add_argument("--file", action="append", default=[])
    run_parser.add_argument("--plugin", required=True)
    run_parser.add_argument("--settings")
    run_parser.add_argument("--out")

    serve_parser = sub.add_parser("serve")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    try:
        if args.command == "list-plugins":
            cmd_list_plugins()
        elif args.command == "plugins":
            if args.plugins_command == "validate":
                cmd_plugins_validate(args.plugin_id)
            else:
                raise SystemExit(2)
        elif args.command == "import":
            cmd_import(args.file)
        elif args.command == "run":
            cmd_run(args.file, args.plugin, args.settings, args.out)
        elif args.command == "serve":
            cmd_serve(args.host, args.port)
        else:
            raise SystemExit(2)
    except WorkbenchError as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
