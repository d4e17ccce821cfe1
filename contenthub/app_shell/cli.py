import argparse
import logging
import sys

from contenthub.adapters.clock import SystemClock
from contenthub.adapters.sqlite.migrator import SQLiteMigrator
from contenthub.adapters.sqlite.repos import SQLiteVersionStore
from contenthub.api.deps import Settings, lifecycle_config
from contenthub.components.lifecycle import LifecycleManager
from contenthub.rules.loader import load_rules
from contenthub.rules.models import Rules

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cli")


def get_rules(settings: Settings) -> Rules:
    if not settings.rules_path.exists():
        logger.error("Rules file %s not found.", settings.rules_path)
        sys.exit(1)
    return load_rules(settings.rules_path)


def handle_migrate(settings: Settings, args: argparse.Namespace) -> None:
    applied = SQLiteMigrator(settings.db_path).run_migrations()
    print(f"Applied {len(applied)} migration(s) to {settings.db_path}.")


def handle_process_due(settings: Settings, args: argparse.Namespace) -> int:
    rules = get_rules(settings)
    store = SQLiteVersionStore(settings.db_path, timeout_seconds=rules.store.timeout_seconds)
    manager = LifecycleManager(store, time_port=SystemClock(), config=lifecycle_config(rules))

    result = manager.process_due()
    print(f"Published {len(result.published)} version(s).")
    print(f"Expired {len(result.expired)} version(s).")
    for failure in result.failures:
        print(f"FAILED {failure.version_id}: [{failure.code}] {failure.message}")
    return 0 if result.success else 1


def handle_serve(settings: Settings, args: argparse.Namespace) -> None:
    import uvicorn

    uvicorn.run("contenthub.api.main:app", host=args.host, port=args.port, reload=args.reload)


def main() -> None:
    parser = argparse.ArgumentParser(description="Content Hub CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    subparsers.add_parser("migrate", help="Apply pending database migrations")

    # process-due
    subparsers.add_parser(
        "process-due", help="Publish due scheduled versions and expire due published ones"
    )

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    args = parser.parse_args()
    settings = Settings()

    if args.command == "migrate":
        handle_migrate(settings, args)
    elif args.command == "process-due":
        sys.exit(handle_process_due(settings, args))
    elif args.command == "serve":
        handle_serve(settings, args)


if __name__ == "__main__":
    main()
