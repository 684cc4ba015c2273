"""
IPNS utilities CLI entry point.

Create keys and records, inspect and verify records, and translate between
IPNS keys, PubSub topics and DHT rendezvous keys.

Usage::

    ipns-utils create id --type ed25519 > name.key
    ipns-utils create record --key-file name.key --value /ipfs/bafy... --lifetime 1h > name.ipns
    ipns-utils parse record name.ipns --input-type path
    ipns-utils parse key name.key --input-type path
    ipns-utils verify record name.ipns --input-type path --key k51qzi5uqu5d...
    ipns-utils pubsub get-topic --key QmXMuMWm6k3CD3sHV824H2BT1ugcHKF6Tm13ZVM8RhGTB7
    ipns-utils pubsub get-key --topic /record/L2lwbnMvEiCG... --format 1
    ipns-utils pubsub get-dht-key-from-topic --topic /record/L2lwbnMvEiCG...
    ipns-utils pubsub get-dht-key-from-key --key QmXMuMWm6k3CD3sHV824H2BT1ugcHKF6Tm13ZVM8RhGTB7

Exit codes:
    0   success
    2   invalid input or flags
    3   key decoding, unsupported key type or signature failure
    4   malformed record or unsupported validity type
    5   malformed identifier, CID or topic
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from pathlib import Path

from ipns_utils.config import (
    DEFAULT_KEY_TYPE,
    DEFAULT_VALUE,
    EOL_FLAG_LAYOUT,
    CreateIdConfig,
    CreateRecordConfig,
    InputConfig,
    InputType,
    ParseKeyConfig,
    TopicConfig,
    VerifyRecordConfig,
    resolve_eol,
)
from ipns_utils.crypto import KeyPair, KeyType, PublicKey, identifier_of
from ipns_utils.multiformats import multibase
from ipns_utils.pubsub import (
    dht_rendezvous_key,
    dht_rendezvous_key_from_identifier,
    key_to_topic,
    topic_to_key,
)
from ipns_utils.record import create_record, parse_duration, parse_record, verify_record
from ipns_utils.types import InputError, IpnsUtilsError
from ipns_utils.views import KeyView, RecordView

logger = logging.getLogger("ipns_utils.cli")


class ColoredFormatter(logging.Formatter):
    """Logging formatter with ANSI colors for better readability."""

    # ANSI color codes
    GREY = "\x1b[38;5;244m"
    BLUE = "\x1b[38;5;39m"
    GREEN = "\x1b[38;5;40m"
    YELLOW = "\x1b[38;5;220m"
    RED = "\x1b[38;5;196m"
    BOLD_RED = "\x1b[38;5;196;1m"
    RESET = "\x1b[0m"

    LEVEL_COLORS = {
        logging.DEBUG: GREY,
        logging.INFO: GREEN,
        logging.WARNING: YELLOW,
        logging.ERROR: RED,
        logging.CRITICAL: BOLD_RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors."""
        color = self.LEVEL_COLORS.get(record.levelno, self.RESET)
        levelname = f"{color}{record.levelname:8}{self.RESET}"
        name = f"{self.BLUE}{record.name}{self.RESET}"
        return f"{levelname} {name}: {record.getMessage()}"


def setup_logging(verbose: bool = False, no_color: bool = False) -> None:
    """
    Configure logging for one invocation.

    Diagnostics go to stderr so stdout carries only command output. The
    handler is attached to the package logger and replaces the handler of
    any previous invocation in the same process.
    """
    level = logging.DEBUG if verbose else logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    if no_color:
        handler.setFormatter(logging.Formatter("%(levelname)-8s %(name)s: %(message)s"))
    else:
        handler.setFormatter(ColoredFormatter())

    package_logger = logging.getLogger("ipns_utils")
    package_logger.handlers.clear()
    package_logger.setLevel(level)
    package_logger.addHandler(handler)


def _eol_arg(text: str) -> datetime:
    """Parse the --eol flag (UTC)."""
    try:
        return datetime.strptime(text, EOL_FLAG_LAYOUT).replace(tzinfo=UTC)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"invalid eol {text!r}, expected YYYY-MM-DDTHH:MM:SS"
        ) from None


def _duration_arg(text: str) -> int:
    """Parse a Go duration flag into nanoseconds."""
    try:
        return parse_duration(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def _read_input(config: InputConfig) -> bytes:
    """Turn the positional argument into bytes according to --input-type."""
    match config.input_type:
        case InputType.BYTES:
            return os.fsencode(config.source)
        case InputType.MULTIBASE:
            _, data = multibase.decode(config.source)
            return data
        case InputType.PATH:
            return _read_file(Path(config.source))


def _read_file(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise InputError(f"cannot read {path}: {e.strerror or e}") from e


def _write_output(data: bytes, output_base: str | None) -> None:
    """Write raw bytes, or multibase text followed by a newline."""
    if output_base:
        sys.stdout.write(multibase.encode(output_base, data) + "\n")
        sys.stdout.flush()
        return
    sys.stdout.flush()
    sys.stdout.buffer.write(data)
    sys.stdout.buffer.flush()


# Command handlers
#
# Each handler builds its configuration, performs one operation and writes
# its result to stdout. Errors propagate to main.


def cmd_create_id(args: argparse.Namespace) -> None:
    """Generate a key, export it and report its identifier."""
    config = CreateIdConfig.build(
        key_type=KeyType.from_name(args.type),
        size=args.size,
        output_base=args.output_base,
    )

    key_pair = KeyPair.generate(config.key_type, config.size)
    identifier = identifier_of(key_pair.public_key)
    logger.info("Generated %s key %s", config.key_type.display_name, identifier)

    _write_output(key_pair.to_bytes(), config.output_base)
    print(f"identifier: {identifier}", file=sys.stderr)


def cmd_create_record(args: argparse.Namespace) -> None:
    """Sign a record with an existing key."""
    lifetime = None if args.lifetime is None else timedelta(microseconds=args.lifetime // 1000)
    config = CreateRecordConfig.build(
        key_file=args.key_file,
        key_encoded=args.key_encoded,
        value=args.value,
        sequence=args.seqno,
        ttl=args.ttl,
        eol=resolve_eol(args.eol, lifetime),
        output_base=args.output_base,
    )

    if config.key_file is not None:
        serialized = _read_file(config.key_file)
    else:
        assert config.key_encoded is not None
        _, serialized = multibase.decode(config.key_encoded)
    key_pair = KeyPair.from_bytes(serialized)

    record = create_record(key_pair, config.value, config.sequence, config.eol, config.ttl)
    logger.debug(
        "Created record for %s: seq=%d eol=%s",
        identifier_of(key_pair.public_key),
        config.sequence,
        config.eol.isoformat(),
    )
    _write_output(record, config.output_base)


def cmd_parse_record(args: argparse.Namespace) -> None:
    """Print the fields of a record without verifying it."""
    config = InputConfig.build(source=args.input, input_type=InputType(args.input_type))
    record = parse_record(_read_input(config))
    print(RecordView.of(record).to_json())


def cmd_parse_key(args: argparse.Namespace) -> None:
    """Print the type and raw material of a serialized key."""
    config = ParseKeyConfig.build(
        source=args.input,
        input_type=InputType(args.input_type),
        private=args.private_key,
    )
    data = _read_input(config)
    key: KeyPair | PublicKey = (
        KeyPair.from_bytes(data) if config.private else PublicKey.from_bytes(data)
    )
    print(KeyView.of(key).to_json())


def cmd_verify_record(args: argparse.Namespace) -> None:
    """Verify a record against an IPNS name and print its fields."""
    config = VerifyRecordConfig.build(
        source=args.input,
        input_type=InputType(args.input_type),
        key=args.key,
    )
    record = verify_record(_read_input(config), config.key)
    if record.is_expired():
        logger.warning("Record expired at %s", record.validity.decode("ascii"))
    logger.info("Record signature is valid for %s", config.key)
    print(RecordView.of(record).to_json())


def cmd_get_topic(args: argparse.Namespace) -> None:
    """IPNS key to PubSub topic."""
    config = TopicConfig.build(key=args.key)
    assert config.key is not None
    print(key_to_topic(config.key))


def cmd_get_key(args: argparse.Namespace) -> None:
    """PubSub topic to IPNS key."""
    config = TopicConfig.build(topic=args.topic, version=args.format)
    assert config.topic is not None
    print(topic_to_key(config.topic, config.version))


def cmd_dht_key_from_topic(args: argparse.Namespace) -> None:
    """PubSub topic to DHT rendezvous key."""
    config = TopicConfig.build(topic=args.topic)
    assert config.topic is not None
    print(dht_rendezvous_key(config.topic))


def cmd_dht_key_from_key(args: argparse.Namespace) -> None:
    """IPNS key to DHT rendezvous key."""
    config = TopicConfig.build(key=args.key)
    assert config.key is not None
    print(dht_rendezvous_key_from_identifier(config.key))


def _add_input_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("input", help="Record or key, interpreted according to --input-type")
    parser.add_argument(
        "--input-type",
        choices=[t.value for t in InputType],
        default=InputType.BYTES.value,
        help="How to read the input (default: bytes)",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="ipns-utils",
        description="IPNS record and identifier utilities",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored logging output",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    # create
    create = commands.add_parser("create", help="Create keys and records")
    create_commands = create.add_subparsers(dest="create_command", required=True)

    create_id = create_commands.add_parser("id", help="Generate a new IPNS key")
    create_id.add_argument(
        "--type",
        default=DEFAULT_KEY_TYPE,
        help=f"Key type: rsa, ed25519, secp256k1 or ecdsa (default: {DEFAULT_KEY_TYPE})",
    )
    create_id.add_argument("--size", type=int, default=None, help="RSA key size in bits")
    create_id.add_argument(
        "--output-base",
        default=None,
        help="Multibase for the exported key (default: raw bytes)",
    )
    create_id.set_defaults(handler=cmd_create_id)

    create_rec = create_commands.add_parser("record", help="Create a signed IPNS record")
    create_rec.add_argument("--key-file", type=Path, default=None, help="Private key file")
    create_rec.add_argument("--key-encoded", default=None, help="Multibase-encoded private key")
    create_rec.add_argument(
        "--value",
        default=DEFAULT_VALUE,
        help=f"Path the record points to (default: {DEFAULT_VALUE})",
    )
    create_rec.add_argument("--seqno", type=int, default=0, help="Sequence number (default: 0)")
    create_rec.add_argument(
        "--ttl",
        type=_duration_arg,
        default=0,
        help="Cache duration, e.g. 30s or 1h (default: 0s)",
    )
    create_rec.add_argument(
        "--eol",
        type=_eol_arg,
        default=None,
        help="Expiry as YYYY-MM-DDTHH:MM:SS in UTC",
    )
    create_rec.add_argument(
        "--lifetime",
        type=_duration_arg,
        default=None,
        help="Expiry relative to now, e.g. 1h or -10m (default: 24h)",
    )
    create_rec.add_argument(
        "--output-base",
        default=None,
        help="Multibase for the record (default: raw bytes)",
    )
    create_rec.set_defaults(handler=cmd_create_record)

    # parse
    parse = commands.add_parser("parse", help="Inspect records and keys")
    parse_commands = parse.add_subparsers(dest="parse_command", required=True)

    parse_rec = parse_commands.add_parser("record", help="Print the fields of a record")
    _add_input_arguments(parse_rec)
    parse_rec.set_defaults(handler=cmd_parse_record)

    parse_key = parse_commands.add_parser("key", help="Print the type and material of a key")
    _add_input_arguments(parse_key)
    parse_key.add_argument(
        "--private-key",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Whether the input is a private key (default: true)",
    )
    parse_key.set_defaults(handler=cmd_parse_key)

    # verify
    verify = commands.add_parser("verify", help="Verify records")
    verify_commands = verify.add_subparsers(dest="verify_command", required=True)

    verify_rec = verify_commands.add_parser("record", help="Verify a record's signature")
    _add_input_arguments(verify_rec)
    verify_rec.add_argument("-k", "--key", required=True, help="IPNS name of the record")
    verify_rec.set_defaults(handler=cmd_verify_record)

    # pubsub
    pubsub = commands.add_parser("pubsub", aliases=["p"], help="IPNS over PubSub identifiers")
    pubsub_commands = pubsub.add_subparsers(dest="pubsub_command", required=True)

    get_topic = pubsub_commands.add_parser(
        "get-topic", aliases=["t"], help="Get the PubSub topic of an IPNS key"
    )
    get_topic.add_argument("-k", "--key", required=True, help="IPNS key")
    get_topic.set_defaults(handler=cmd_get_topic)

    get_key = pubsub_commands.add_parser(
        "get-key", aliases=["k"], help="Get the IPNS key of a PubSub topic"
    )
    get_key.add_argument("-t", "--topic", required=True, help="PubSub topic")
    get_key.add_argument(
        "-f",
        "--format",
        type=int,
        default=0,
        help="CID version of the key: 0 (base58) or 1 (base32) (default: 0)",
    )
    get_key.set_defaults(handler=cmd_get_key)

    dkt = pubsub_commands.add_parser(
        "get-dht-key-from-topic", aliases=["dkt"], help="Get the DHT rendezvous key of a topic"
    )
    dkt.add_argument("-t", "--topic", required=True, help="PubSub topic")
    dkt.set_defaults(handler=cmd_dht_key_from_topic)

    dkk = pubsub_commands.add_parser(
        "get-dht-key-from-key", aliases=["dkk"], help="Get the DHT rendezvous key of an IPNS key"
    )
    dkk.add_argument("-k", "--key", required=True, help="IPNS key")
    dkk.set_defaults(handler=cmd_dht_key_from_key)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """
    CLI entry point.

    Returns:
        The process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose, args.no_color)

    try:
        args.handler(args)
    except IpnsUtilsError as e:
        logger.error("%s", e.message)
        return e.exit_code
    return 0


if __name__ == "__main__":
    sys.exit(main())
