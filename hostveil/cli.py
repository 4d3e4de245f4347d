"""Command line interface for HOSTVEIL.

``hostveil hide`` embeds a file into a host, ``hostveil extract`` recovers it
and ``hostveil suggest`` lists the algorithms able to carry a payload.
"""

from __future__ import annotations

import argparse
import os
from pathlib import Path
from typing import Iterable, Optional

from hostveil.config import APP_DESCRIPTION, APP_NAME, APP_VERSION
from hostveil.core.errors import HostveilError
from hostveil.core.types import AlgoKind, Mode
from hostveil.session import (
    Choices,
    check_compatibility,
    choose_algo,
    detect_algo,
    extract,
    init,
    insert,
    suggest_algo,
)
from hostveil.utils.logger import setup_logger

logger = setup_logger(__name__)

ALGORITHM_CHOICES = [algo.name.lower().replace("_", "-") for algo in AlgoKind]


class CLIError(RuntimeError):
    """Custom error raised for recoverable CLI failures."""


def _ensure_exists(path: Path, description: str) -> Path:
    if not path.exists():
        raise CLIError(f"{description} not found: {path}")
    return path


def _default_output(host_path: Path) -> Path:
    return host_path.with_name(host_path.stem + "_stego" + host_path.suffix)


def parse_arguments(argv: Optional[Iterable[str]] = None):
    """Return parsed command line arguments."""

    parser = argparse.ArgumentParser(
        prog="hostveil",
        description=f"{APP_DESCRIPTION} v{APP_VERSION}",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"{APP_NAME} v{APP_VERSION}")

    subparsers = parser.add_subparsers(dest="command", metavar="command")

    # ------------------------------------------------------------------
    # Hide command
    # ------------------------------------------------------------------
    hide = subparsers.add_parser(
        "hide",
        help="Hide a file inside a host file",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    hide.add_argument("-c", "--carrier", required=True, help="Path to the host file")
    hide.add_argument("-p", "--payload", required=True, help="Path to the file to hide")
    hide.add_argument("-o", "--output", help="Path for the resulting file")
    hide.add_argument(
        "-a",
        "--algorithm",
        choices=ALGORITHM_CHOICES,
        help="Embedding algorithm (defaults to the first one offered)",
    )
    hide.add_argument("--password", "--pw", help="Password keying the embedding order")

    # ------------------------------------------------------------------
    # Extract command
    # ------------------------------------------------------------------
    extract_cmd = subparsers.add_parser(
        "extract",
        help="Recover a hidden file",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    extract_cmd.add_argument("-i", "--input", required=True, help="Path to the file holding hidden data")
    extract_cmd.add_argument("-o", "--output", default=".", help="Directory receiving the hidden file")
    extract_cmd.add_argument("--password", "--pw", help="Password used when hiding")

    # ------------------------------------------------------------------
    # Suggest command
    # ------------------------------------------------------------------
    suggest = subparsers.add_parser(
        "suggest",
        help="List the algorithms able to hide a file in a host",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    suggest.add_argument("-c", "--carrier", required=True, help="Path to the host file")
    suggest.add_argument("-p", "--payload", required=True, help="Path to the file to hide")

    return parser.parse_args(args=list(argv) if argv is not None else None)


class HostveilCLI:
    """CLI dispatcher for HOSTVEIL."""

    def __init__(self, args) -> None:
        self.args = args
        self.command = getattr(args, "command", None)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------
    def run(self) -> bool:
        try:
            if self.command == "hide":
                self._handle_hide()
            elif self.command == "extract":
                self._handle_extract()
            elif self.command == "suggest":
                self._handle_suggest()
            else:
                raise CLIError("No command specified. Use --help for usage information.")
        except (CLIError, HostveilError) as exc:
            logger.error("CLI error: %s", exc)
            print(f"Error: {exc}")
            return False
        except KeyboardInterrupt:
            print("Operation cancelled by user.")
            return False

        return True

    # ------------------------------------------------------------------
    # Hide command
    # ------------------------------------------------------------------
    def _handle_hide(self) -> None:
        args = self.args
        host_path = _ensure_exists(Path(args.carrier), "Host file")
        payload_path = _ensure_exists(Path(args.payload), "Payload file")
        output_path = Path(args.output) if args.output else _default_output(host_path)

        choices = Choices(Mode.INSERT, host_path, output_path, hidden_path=payload_path, password=args.password)
        with init(choices) as session:
            kind = check_compatibility(session)
            offered = list(suggest_algo(session))
            if not offered:
                raise CLIError(f"No algorithm can hide {payload_path.name} in this {kind.value} host")

            algorithm = AlgoKind.from_name(args.algorithm) if args.algorithm else offered[0]
            choose_algo(session, algorithm)
            insert(session)

        print(f"\n{APP_NAME} v{APP_VERSION} - Hide")
        print(f"Host      : {host_path} ({kind.value})")
        print(f"Payload   : {payload_path} ({session.hidden_length} bytes)")
        print(f"Output    : {output_path}")
        print(f"Algorithm : {algorithm.name}")
        if not args.password:
            print("Password  : generated and stored in the result")

    # ------------------------------------------------------------------
    # Extract command
    # ------------------------------------------------------------------
    def _handle_extract(self) -> None:
        args = self.args
        stego_path = _ensure_exists(Path(args.input), "Input file")
        output_dir = Path(args.output)

        choices = Choices(Mode.EXTRACT, stego_path, output_dir, password=args.password)
        with init(choices) as session:
            check_compatibility(session)
            signature = detect_algo(session)
            target = extract(session, output_dir)

        print(f"\n{APP_NAME} v{APP_VERSION} - Extract")
        print(f"Input     : {stego_path}")
        print(f"Algorithm : {signature.algorithm.name}")
        print(f"Recovered : {target} ({signature.hidden_length} bytes)")

    # ------------------------------------------------------------------
    # Suggest command
    # ------------------------------------------------------------------
    def _handle_suggest(self) -> None:
        args = self.args
        host_path = _ensure_exists(Path(args.carrier), "Host file")
        payload_path = _ensure_exists(Path(args.payload), "Payload file")

        # the insert session needs a result stream; nothing is written to it
        choices = Choices(Mode.INSERT, host_path, os.devnull, hidden_path=payload_path)
        with init(choices) as session:
            kind = check_compatibility(session)
            offered = list(suggest_algo(session))

        print(f"\n{APP_NAME} v{APP_VERSION} - Suggest")
        print(f"Host      : {host_path} ({kind.value})")
        print(f"Payload   : {payload_path} ({session.hidden_length} bytes)")
        if offered:
            print("Offered   : " + ", ".join(algo.name for algo in offered))
        else:
            print("Offered   : none (payload too large for this host)")


def main(argv: Optional[Iterable[str]] = None) -> int:
    """Console entry point; returns the process exit code."""

    args = parse_arguments(argv)
    cli = HostveilCLI(args)
    return 0 if cli.run() else 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
