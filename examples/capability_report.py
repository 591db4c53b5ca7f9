from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path


def _ensure_repo_root_on_syspath() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    root = str(repo_root)
    if root not in sys.path:
        sys.path.insert(0, root)


def run(env_file: str | None, registry_file: str, target_org: str | None) -> dict[str, object]:
    _ensure_repo_root_on_syspath()
    from exchange_access import (  # pylint: disable=import-error
        AccessClient,
        CapabilityRegistry,
        RunConfig,
    )

    registry = CapabilityRegistry.from_file(registry_file)
    with AccessClient.from_env(
        env_file=env_file, config=RunConfig(timeout_s=5.0), registry=registry
    ) as client:
        check = client.can_do_anything(target_org=target_org)
    report = check.report
    return {
        "principal": report.identity.principal,
        "role": report.identity.role.value,
        "org_listing": check.chain.org_listing_breadth(),
        "runnable": {
            category.name: [descriptor.name for descriptor in members]
            for category, members in report.grouped_runnable()
        },
        "restricted": [descriptor.name for descriptor in report.restricted],
        "mismatched_levels": [
            verdict.level for verdict in check.chain.verdicts if verdict.status.is_mismatch
        ],
        "summary": report.summary(),
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Capability report for an Exchange identity.")
    parser.add_argument("--env-file", default=None, help="Path to a .env credentials file.")
    parser.add_argument(
        "--registry-file",
        default="examples/capability_registry.yaml",
        help="Path to a YAML or JSON capability registry.",
    )
    parser.add_argument("--org", default=None, help="Also probe another organization.")
    args = parser.parse_args()
    payload = run(env_file=args.env_file, registry_file=args.registry_file, target_org=args.org)
    print(json.dumps(payload, indent=2, sort_keys=True))


if __name__ == "__main__":
    main()
