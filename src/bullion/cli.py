"""Bullion CLI — command-line interface for the certification registry.

Usage:
    python -m bullion.cli status
    python -m bullion.cli add-validator --actor admin --id val-1
    python -m bullion.cli register-asset --actor alice --name "Bar 1" --type Gold \\
        --weight 100 --purity 99990 --image ipfs://a --image ipfs://b
    python -m bullion.cli cast-vote --actor val-1 --asset 1 --vote true
    python -m bullion.cli show-asset --asset 1
    python -m bullion.cli check-invariants

Environment (a .env file in the working directory is loaded first):
    BULLION_CONFIG_DIR   config directory (default: config/)
    BULLION_DATA_DIR     event log and snapshot directory (default: data/)
    BULLION_LOG_LEVEL    logging level (default: WARNING)
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from bullion.errors import RegistryError
from bullion.models.asset import AssetRecord, AssetStatus
from bullion.models.settlement import RewardRateKind
from bullion.persistence.event_log import EventKind, EventLog
from bullion.persistence.state_store import StateStore
from bullion.policy.resolver import PolicyResolver
from bullion.service import RegistryService


DEFAULT_CONFIG = Path(__file__).resolve().parents[2] / "config"
DEFAULT_DATA = Path(__file__).resolve().parents[2] / "data"


def _make_service(config_dir: Path, data_dir: Path) -> RegistryService:
    """Create a RegistryService with durable persistence."""
    data_dir.mkdir(parents=True, exist_ok=True)
    resolver = PolicyResolver.from_config_dir(config_dir)
    return RegistryService(
        resolver,
        event_log=EventLog(storage_path=data_dir / "events.jsonl"),
        state_store=StateStore(storage_path=data_dir / "state.json"),
    )


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def _asset_view(service: RegistryService, asset: AssetRecord) -> dict[str, Any]:
    view = asset.to_dict()
    view["weight_grams_exact"] = str(asset.weight_grams_exact)
    view["purity_percentage_exact"] = str(asset.purity_percentage_exact)
    view["votes"] = [
        {"validator_id": v, "vote": vote}
        for v, vote in service.get_votes(asset.asset_id)
    ]
    return view


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("true", "yes", "1", "approve"):
        return True
    if lowered in ("false", "no", "0", "reject"):
        return False
    raise argparse.ArgumentTypeError(f"Expected true/false, got {value!r}")


def cmd_status(args: argparse.Namespace, service: RegistryService) -> int:
    _print_json(service.status())
    return 0


def cmd_register_asset(args: argparse.Namespace, service: RegistryService) -> int:
    asset_id = service.register_asset(
        args.actor,
        name=args.name,
        asset_type=args.asset_type,
        year=args.year,
        asset_country=args.asset_country,
        creator_country=args.creator_country,
        asset_name=args.asset_name or args.name,
        weight_grams=args.weight,
        purity_percentage=args.purity,
        quantity=args.quantity,
        is_fungible=args.fungible,
        image_uris=args.image or [],
    )
    asset = service.get_asset(asset_id)
    print(f"Registered asset: {asset_id} (fee: {asset.fee})")
    return 0


def cmd_cast_vote(args: argparse.Namespace, service: RegistryService) -> int:
    service.cast_vote(args.asset, args.actor, args.vote)
    print(f"Vote recorded; asset {args.asset} status: {service.get_status(args.asset).value}")
    return 0


def cmd_show_asset(args: argparse.Namespace, service: RegistryService) -> int:
    _print_json(_asset_view(service, service.get_asset(args.asset)))
    return 0


def cmd_votes(args: argparse.Namespace, service: RegistryService) -> int:
    _print_json([
        {"validator_id": v, "vote": vote} for v, vote in service.get_votes(args.asset)
    ])
    return 0


def cmd_balance(args: argparse.Namespace, service: RegistryService) -> int:
    print(service.get_balance(args.account))
    return 0


def cmd_list_assets(args: argparse.Namespace, service: RegistryService) -> int:
    status = AssetStatus(args.status) if args.status else None
    _print_json([
        a.to_dict() for a in service.list_assets(status=status, creator_id=args.creator)
    ])
    return 0


def cmd_pending(args: argparse.Namespace, service: RegistryService) -> int:
    _print_json([a.asset_id for a in service.pending_for(args.validator)])
    return 0


def cmd_quote_fee(args: argparse.Namespace, service: RegistryService) -> int:
    print(service.quote_fee(args.asset_type, args.weight))
    return 0


def cmd_add_validator(args: argparse.Namespace, service: RegistryService) -> int:
    service.add_validator(args.actor, args.id)
    print(f"Added validator: {args.id.strip()}")
    return 0


def cmd_remove_validator(args: argparse.Namespace, service: RegistryService) -> int:
    service.remove_validator(args.actor, args.id)
    print(f"Removed validator: {args.id.strip()}")
    return 0


def cmd_set_required_approvals(args: argparse.Namespace, service: RegistryService) -> int:
    service.set_required_approvals(args.actor, args.value)
    print(f"Required approvals: {args.value}")
    return 0


def cmd_set_fee(args: argparse.Namespace, service: RegistryService) -> int:
    service.set_fee(args.actor, args.asset_type, args.bucket, args.fee)
    print(f"Fee for {args.asset_type} bucket {args.bucket}: {args.fee}")
    return 0


def cmd_set_reward_rate(args: argparse.Namespace, service: RegistryService) -> int:
    service.set_reward_rate(args.actor, args.rate, args.value)
    print(f"Reward rate {args.rate}: {args.value}")
    return 0


def cmd_transfer_admin(args: argparse.Namespace, service: RegistryService) -> int:
    service.transfer_admin(args.actor, args.to)
    print(f"Administrator: {args.to.strip()}")
    return 0


def cmd_events(args: argparse.Namespace, service: RegistryService) -> int:
    kind = EventKind(args.kind) if args.kind else None
    if args.asset is not None:
        events = service.event_log.events_for_asset(args.asset, kind)
    else:
        events = service.events(kind)
    _print_json([e.to_dict() for e in events])
    return 0


def cmd_check_invariants(args: argparse.Namespace) -> int:
    """Validate the configuration directory."""
    resolver = PolicyResolver.from_config_dir(args.config)
    errors = resolver.check_invariants()
    if errors:
        for error in errors:
            print(f"FAIL: {error}", file=sys.stderr)
        return 1
    print("All registry invariants satisfied.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bullion",
        description="Bullion registry — validator quorum certification CLI",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config directory (default: $BULLION_CONFIG_DIR or config/)",
    )
    parser.add_argument(
        "--data",
        type=Path,
        default=None,
        help="Path to data directory (default: $BULLION_DATA_DIR or data/)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: $BULLION_LOG_LEVEL or WARNING)",
    )
    sub = parser.add_subparsers(dest="command")

    # status
    sub.add_parser("status", help="Show registry status")

    # register-asset
    p_reg = sub.add_parser("register-asset", help="Register a new asset claim")
    p_reg.add_argument("--actor", required=True, help="Submitter ID")
    p_reg.add_argument("--name", required=True, help="Asset name")
    p_reg.add_argument("--type", dest="asset_type", required=True, help="Asset type (Silver, Gold)")
    p_reg.add_argument("--weight", type=int, required=True, help="Weight in grams x 100")
    p_reg.add_argument("--purity", type=int, required=True, help="Purity in percent x 1000")
    p_reg.add_argument("--quantity", type=int, default=1, help="Quantity (default: 1)")
    p_reg.add_argument("--fungible", action="store_true", help="Mark the asset fungible")
    p_reg.add_argument("--year", default="", help="Year of manufacture")
    p_reg.add_argument("--asset-country", default="", help="Country of the asset")
    p_reg.add_argument("--creator-country", default="", help="Country of the creator")
    p_reg.add_argument("--asset-name", help="Display name (default: --name)")
    p_reg.add_argument(
        "--image", action="append",
        help="Image URI (repeat; at least two, first is canonical)",
    )

    # cast-vote
    p_vote = sub.add_parser("cast-vote", help="Cast a validator vote")
    p_vote.add_argument("--actor", required=True, help="Validator ID")
    p_vote.add_argument("--asset", type=int, required=True, help="Asset ID")
    p_vote.add_argument("--vote", type=_parse_bool, required=True, help="true or false")

    # show-asset
    p_show = sub.add_parser("show-asset", help="Show an asset and its votes")
    p_show.add_argument("--asset", type=int, required=True, help="Asset ID")

    # votes
    p_votes = sub.add_parser("votes", help="Show the validator ballot for an asset")
    p_votes.add_argument("--asset", type=int, required=True, help="Asset ID")

    # balance
    p_bal = sub.add_parser("balance", help="Show a reward balance")
    p_bal.add_argument("--account", required=True, help="Account ID")

    # list-assets
    p_list = sub.add_parser("list-assets", help="List assets")
    p_list.add_argument("--status", choices=[s.value for s in AssetStatus])
    p_list.add_argument("--creator", help="Filter by creator ID")

    # pending
    p_pend = sub.add_parser("pending", help="Pending assets awaiting a validator's vote")
    p_pend.add_argument("--validator", required=True, help="Validator ID")

    # quote-fee
    p_quote = sub.add_parser("quote-fee", help="Quote the minting fee for a weight")
    p_quote.add_argument("--type", dest="asset_type", required=True, help="Asset type")
    p_quote.add_argument("--weight", type=int, required=True, help="Weight in grams x 100")

    # administration
    p_addv = sub.add_parser("add-validator", help="Add a validator (admin)")
    p_addv.add_argument("--actor", required=True, help="Administrator ID")
    p_addv.add_argument("--id", required=True, help="Validator ID")

    p_remv = sub.add_parser("remove-validator", help="Remove a validator (admin)")
    p_remv.add_argument("--actor", required=True, help="Administrator ID")
    p_remv.add_argument("--id", required=True, help="Validator ID")

    p_req = sub.add_parser("set-required-approvals", help="Set the approval quorum (admin)")
    p_req.add_argument("--actor", required=True, help="Administrator ID")
    p_req.add_argument("--value", type=int, required=True, help="Approvals required")

    p_fee = sub.add_parser("set-fee", help="Set a fee-schedule entry (admin)")
    p_fee.add_argument("--actor", required=True, help="Administrator ID")
    p_fee.add_argument("--type", dest="asset_type", required=True, help="Asset type")
    p_fee.add_argument("--bucket", type=int, required=True, help="Quantity bucket")
    p_fee.add_argument("--fee", type=int, required=True, help="Fee (USD-scaled integer)")

    p_rate = sub.add_parser("set-reward-rate", help="Set a reward rate (admin)")
    p_rate.add_argument("--actor", required=True, help="Administrator ID")
    p_rate.add_argument("--rate", required=True, choices=[k.value for k in RewardRateKind])
    p_rate.add_argument("--value", type=int, required=True, help="Reward points")

    p_admin = sub.add_parser("transfer-admin", help="Hand administration to another ID (admin)")
    p_admin.add_argument("--actor", required=True, help="Current administrator ID")
    p_admin.add_argument("--to", required=True, help="New administrator ID")

    # events
    p_ev = sub.add_parser("events", help="Show the event log")
    p_ev.add_argument("--kind", choices=[k.value for k in EventKind])
    p_ev.add_argument("--asset", type=int, help="Only events for this asset")

    # check-invariants
    sub.add_parser("check-invariants", help="Validate the registry configuration")

    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv(Path.cwd() / ".env")
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.config is None:
        args.config = Path(os.getenv("BULLION_CONFIG_DIR") or DEFAULT_CONFIG)
    if args.data is None:
        args.data = Path(os.getenv("BULLION_DATA_DIR") or DEFAULT_DATA)
    log_level = args.log_level or os.getenv("BULLION_LOG_LEVEL") or "WARNING"
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "status": cmd_status,
        "register-asset": cmd_register_asset,
        "cast-vote": cmd_cast_vote,
        "show-asset": cmd_show_asset,
        "votes": cmd_votes,
        "balance": cmd_balance,
        "list-assets": cmd_list_assets,
        "pending": cmd_pending,
        "quote-fee": cmd_quote_fee,
        "add-validator": cmd_add_validator,
        "remove-validator": cmd_remove_validator,
        "set-required-approvals": cmd_set_required_approvals,
        "set-fee": cmd_set_fee,
        "set-reward-rate": cmd_set_reward_rate,
        "transfer-admin": cmd_transfer_admin,
        "events": cmd_events,
    }

    try:
        if args.command == "check-invariants":
            return cmd_check_invariants(args)
        handler = commands.get(args.command)
        if handler is None:
            print(f"Unknown command: {args.command}", file=sys.stderr)
            return 1
        service = _make_service(args.config, args.data)
        return handler(args, service)
    except RegistryError as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
