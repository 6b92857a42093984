import argparse
import json
import sys
from pathlib import Path

from loguru import logger

from actions import UnknownActionError, available_actions, dispatch, open_context
from baozi.core.config import get_settings


def _load_params(args: argparse.Namespace) -> dict:
    if args.params_file:
        raw = Path(args.params_file).read_text(encoding="utf-8")
    else:
        raw = args.params or "{}"
    try:
        params = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Params must be a JSON object: {exc}") from exc
    if not isinstance(params, dict):
        raise SystemExit("Params must be a JSON object")
    for item in args.set or []:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            logger.warning("Ignoring invalid --set argument: {}", item)
            continue
        try:
            params[key.strip()] = json.loads(value)
        except json.JSONDecodeError:
            params[key.strip()] = value
    return params


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a Baozi agent action and print the result")
    parser.add_argument("action", nargs="?", help="Action name, e.g. build_bet_transaction")
    parser.add_argument("params", nargs="?", default=None, help="JSON object of action parameters")
    parser.add_argument("--params-file", default=None, help="Read parameters from a JSON file")
    parser.add_argument(
        "--set",
        action="append",
        default=None,
        metavar="KEY=VALUE",
        help="Set a single parameter (repeatable); VALUE is parsed as JSON when possible",
    )
    parser.add_argument(
        "--no-simulate",
        action="store_true",
        help="Skip the advisory simulation of assembled transactions",
    )
    parser.add_argument("--list", action="store_true", help="List registered actions and exit")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    if args.list or not args.action:
        for name in available_actions():
            print(name)
        return 0

    settings = get_settings()
    if args.no_simulate:
        settings = settings.model_copy(update={"simulate_by_default": False})
    params = _load_params(args)

    with open_context(settings) as context:
        try:
            response = dispatch(args.action, params, context)
        except UnknownActionError as exc:
            logger.error("{}", exc)
            return 2

    print(json.dumps(response.model_dump(), indent=2, default=str))
    return 0 if response.success else 1


if __name__ == "__main__":
    sys.exit(main())
