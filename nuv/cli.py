from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from dotenv import load_dotenv
from kubernetes.client.rest import ApiException

from nuv.common.config import NuvConfig
from nuv.runtime import DeploymentOrchestrator, KindProvisioner, NuvError

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool) -> None:
    """Configure root logging based on verbosity level."""
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(message)s" if not verbose else "%(levelname)s %(name)s %(message)s",
    )

    # Set log level for specific loggers to reduce noise
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("kubernetes").setLevel(logging.WARNING)


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(prog="nuv", description="Deploy and manage Nuvolaris on Kubernetes.")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    deploy = subparsers.add_parser("deploy", help="Write the deployment descriptor and apply it.")
    deploy.add_argument(
        "--args",
        nargs=argparse.REMAINDER,
        default=[],
        help="Extra arguments passed to kubectl apply; everything after it is forwarded verbatim.",
    )
    deploy.add_argument(
        "--no-preflight-checks",
        action="store_true",
        help="Disable preflight checks.",
    )

    setup = subparsers.add_parser("setup", help="Create the namespace, deploy and wait for the operator.")
    setup.add_argument(
        "--devcluster",
        action="store_true",
        help="Create a local kind dev cluster first.",
    )
    setup.add_argument(
        "--no-wait",
        action="store_true",
        help="Do not wait for the operator pod to be running.",
    )
    setup.add_argument(
        "--no-preflight-checks",
        action="store_true",
        help="Disable preflight checks.",
    )

    subparsers.add_parser("reset", help="Delete the namespace and its custom resource definition.")

    devcluster = subparsers.add_parser("devcluster", help="Create or delete the local kind dev cluster.")
    devcluster.add_argument("action", choices=["create", "delete"])
    devcluster.add_argument("args", nargs=argparse.REMAINDER, help="Extra kind arguments.")

    kind = subparsers.add_parser("kind", help="Run kind with the given arguments.")
    kind.add_argument("args", nargs=argparse.REMAINDER, help="kind subcommand args")

    return parser.parse_args(argv)


def run(args: argparse.Namespace, config: NuvConfig) -> int:
    if args.command == "kind":
        return KindProvisioner(config).passthrough(args.args)

    if args.command == "devcluster":
        KindProvisioner(config).manage_cluster(args.action, args.args)
        return 0

    orchestrator = DeploymentOrchestrator(config)
    if args.command == "deploy":
        orchestrator.deploy(args.args, no_preflight_checks=args.no_preflight_checks)
    elif args.command == "setup":
        orchestrator.setup(
            devcluster=args.devcluster,
            wait=not args.no_wait,
            no_preflight_checks=args.no_preflight_checks,
        )
    elif args.command == "reset":
        orchestrator.reset()
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for the nuv command."""
    load_dotenv()
    args = parse_args(sys.argv[1:] if argv is None else argv)
    configure_logging(args.verbose)

    try:
        return run(args, NuvConfig())
    except (NuvError, ApiException) as exc:
        logger.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
