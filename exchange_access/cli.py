from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from exchange_access.chain import EXIT_ERROR, ChainResult
from exchange_access.client import AccessClient
from exchange_access.credentials import DEFAULT_TIMEOUT_S, ExitPolicy, RunConfig
from exchange_access.errors import CredentialError, IdentityResolutionError, RegistryConfigError
from exchange_access.registry import CapabilityRegistry
from exchange_access.report import chain_to_dict, runnability_to_dict
from exchange_access.telemetry import OpenTelemetryTraceEmitter
from exchange_contracts import RunnabilityReport


def _print_json(payload: dict[str, object]) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True))


def _run_config(args: argparse.Namespace) -> RunConfig:
    return RunConfig(
        json_output=args.json,
        verbose=args.verbose,
        timeout_s=args.timeout_s,
        verify_tls=not args.insecure,
        exit_policy=ExitPolicy.STRICT if args.strict else ExitPolicy.ACTUAL,
        target_org=getattr(args, "org", None),
        emit_traces=args.otel,
    )


def _configure_logging(config: RunConfig) -> None:
    logging.basicConfig(
        level=logging.DEBUG if config.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _report_error(config: RunConfig, message: str, http_code: int | None = None) -> int:
    if config.json_output:
        _print_json({"error": message, "http_code": http_code})
    else:
        print(f"Error: {message}", file=sys.stderr)
    return EXIT_ERROR


def _open_client(
    args: argparse.Namespace, config: RunConfig, registry: CapabilityRegistry | None = None
) -> AccessClient:
    trace_emitter = OpenTelemetryTraceEmitter() if config.emit_traces else None
    return AccessClient.from_env(
        env_file=args.env_file,
        config=config,
        registry=registry,
        trace_emitter=trace_emitter,
    )


def _print_chain(result: ChainResult, config: RunConfig) -> None:
    identity = result.identity
    print(f"User: {identity.principal} (role: {identity.role.value})")
    for verdict in result.verdicts:
        predicted = "YES" if verdict.predicted.allowed else "NO"
        actual = "YES" if verdict.actual.allowed else "NO"
        print(f"[{verdict.level}] scope={verdict.scope.value}")
        print(f"  Predicted: {predicted} - {verdict.predicted.reason}")
        print(f"  Actual:    {actual} - HTTP {verdict.actual.http_status} {verdict.actual.reason}")
        print(f"  Status:    {verdict.status.value} - {verdict.message}")
        if config.verbose or verdict.status.is_mismatch:
            for hint in verdict.hints:
                print(f"    * {hint}")


def _print_runnability(report: RunnabilityReport, config: RunConfig) -> None:
    identity = report.identity
    print(f"Available operations for {identity.principal} (role: {identity.role.value})")
    counter = 1
    for category, members in report.grouped_runnable():
        print(f"{category.title} ({len(members)})")
        for descriptor in members:
            print(f"{counter:3d}. {descriptor.name:<30} - {descriptor.description}")
            counter += 1
    if report.restricted:
        print(f"{len(report.restricted)} operation(s) restricted due to insufficient permissions.")
        if config.verbose:
            for descriptor in report.restricted:
                print(f"  x {descriptor.name} (requires {descriptor.required_scope.value})")
    for diagnostic in report.diagnostics:
        print(f"Registry: {diagnostic}", file=sys.stderr)


def _cmd_list_users(args: argparse.Namespace) -> int:
    config = _run_config(args)
    _configure_logging(config)
    try:
        with _open_client(args, config) as client:
            result = client.can_list_users(target_org=config.target_org)
    except IdentityResolutionError as exc:
        return _report_error(config, str(exc), http_code=exc.status)
    except (CredentialError, RuntimeError) as exc:
        return _report_error(config, str(exc))
    exit_code = result.exit_code(config.exit_policy)
    if config.json_output:
        _print_json(chain_to_dict(result, exit_code))
    else:
        _print_chain(result, config)
    return exit_code


def _cmd_list_orgs(args: argparse.Namespace) -> int:
    config = _run_config(args)
    _configure_logging(config)
    try:
        with _open_client(args, config) as client:
            result = client.can_list_orgs()
    except IdentityResolutionError as exc:
        return _report_error(config, str(exc), http_code=exc.status)
    except (CredentialError, RuntimeError) as exc:
        return _report_error(config, str(exc))
    exit_code = result.exit_code(config.exit_policy)
    if config.json_output:
        _print_json(chain_to_dict(result, exit_code))
    else:
        _print_chain(result, config)
        print(f"Organization listing: {result.org_listing_breadth()}")
    return exit_code


def _cmd_do_anything(args: argparse.Namespace) -> int:
    config = _run_config(args)
    _configure_logging(config)
    try:
        registry = (
            CapabilityRegistry.from_file(args.registry_file)
            if args.registry_file is not None
            else None
        )
        with _open_client(args, config, registry=registry) as client:
            check = client.can_do_anything(target_org=config.target_org)
    except IdentityResolutionError as exc:
        return _report_error(config, str(exc), http_code=exc.status)
    except (CredentialError, RegistryConfigError, RuntimeError, OSError, ValueError) as exc:
        return _report_error(config, str(exc))
    if config.json_output:
        _print_json(runnability_to_dict(check.report))
    else:
        if config.verbose:
            _print_chain(check.chain, config)
        _print_runnability(check.report, config)
    return 0


def _cmd_registry_validate(args: argparse.Namespace) -> int:
    path = Path(args.file)
    if not path.exists():
        print(f"Registry file not found: {path}", file=sys.stderr)
        return 1
    try:
        registry = CapabilityRegistry.from_file(str(path))
    except Exception as exc:  # noqa: BLE001
        print(f"Registry validation failed: {exc}", file=sys.stderr)
        return 1
    _print_json(
        {
            "valid": len(registry.rejected) == 0,
            "capability_count": len(registry),
            "rejected": [str(error) for error in registry.rejected],
            "file": str(path),
        }
    )
    return 0 if not registry.rejected else 1


def _add_check_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--env-file", default=None, help="Path to a .env credentials file.")
    parser.add_argument("-j", "--json", action="store_true", help="Output JSON only.")
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("--timeout-s", type=float, default=DEFAULT_TIMEOUT_S)
    parser.add_argument(
        "--insecure", action="store_true", help="Skip TLS certificate verification."
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit 1 on any mismatch, including unexpectedly granted access.",
    )
    parser.add_argument(
        "--otel",
        action="store_true",
        help="Emit one OpenTelemetry span per verdict (requires opentelemetry-api).",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Exchange access checker")
    subparsers = parser.add_subparsers(dest="command", required=True)

    can_parser = subparsers.add_parser("can-i", help="Predict and verify access")
    can_sub = can_parser.add_subparsers(dest="can_command", required=True)

    list_users = can_sub.add_parser("list-users", help="Can I list users in an organization?")
    _add_check_args(list_users)
    list_users.add_argument("-o", "--org", default=None, help="Target organization.")
    list_users.set_defaults(func=_cmd_list_users)

    list_orgs = can_sub.add_parser("list-orgs", help="Can I list organizations?")
    _add_check_args(list_orgs)
    list_orgs.set_defaults(func=_cmd_list_orgs)

    do_anything = can_sub.add_parser("do-anything", help="Which operations can I run?")
    _add_check_args(do_anything)
    do_anything.add_argument("-o", "--org", default=None, help="Also probe another organization.")
    do_anything.add_argument("--registry-file", default=None)
    do_anything.set_defaults(func=_cmd_do_anything)

    registry_parser = subparsers.add_parser("registry", help="Capability registry commands")
    registry_sub = registry_parser.add_subparsers(dest="registry_command", required=True)

    registry_validate = registry_sub.add_parser("validate", help="Validate registry file")
    registry_validate.add_argument("--file", required=True)
    registry_validate.set_defaults(func=_cmd_registry_validate)

    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    exit_code = args.func(args)
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
