import argparse
import dataclasses
import json
from datetime import date, datetime, time
from decimal import Decimal
from pathlib import Path
from typing import Any, List, Optional

from . import __version__
from .database import Contract, Job, get_session_factory, init_database, create_db_engine
from .deposit import DepositGuard
from .env import Settings, load_env
from .errors import ContractbookError, NotFoundError, UnauthorizedError
from .logger import get_logger
from .registry import get_contract, get_profile, list_contracts, unpaid_jobs
from .reporting import DEFAULT_BEST_CLIENTS_LIMIT, best_clients, best_profession
from .repository import JobRecord, unit_of_work_factory
from .seed import seed_database
from .settlement import SettlementEngine


def _json_default(value: Any):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=_json_default))


def contract_to_dict(contract: Contract) -> dict:
    return {
        "id": contract.id,
        "terms": contract.terms,
        "status": contract.status,
        "client_id": contract.client_id,
        "contractor_id": contract.contractor_id,
    }


def job_to_dict(job) -> dict:
    """Serialize a Job row or a JobRecord."""
    return {
        "id": job.id,
        "contract_id": job.contract_id,
        "description": job.description,
        "price": job.price,
        "paid": bool(job.paid),
        "payment_date": job.payment_date,
    }


def _parse_date(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an ISO date: {value!r}")


def _parse_end_date(value: str) -> datetime:
    """Like _parse_date, but a bare date covers the whole of that day."""
    try:
        return datetime.combine(date.fromisoformat(value), time.max)
    except ValueError:
        return _parse_date(value)


def _settings(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env()
    if getattr(args, "db", None):
        settings = dataclasses.replace(settings, db_path=Path(args.db))
    return settings


def _session_factory(settings: Settings):
    if not settings.db_path.exists():
        raise SystemExit(f"Database not found: {settings.db_path} (run init-db first)")
    engine = create_db_engine(settings.db_path, timeout=settings.lock_timeout)
    return get_session_factory(engine)


def _resolve_profile(session, profile_id: int):
    profile = get_profile(session, profile_id)
    if profile is None:
        raise UnauthorizedError(f"profile {profile_id} not found")
    return profile


def cmd_init_db(args: argparse.Namespace) -> None:
    settings = _settings(args)
    init_database(settings.db_path, timeout=settings.lock_timeout)
    get_logger().info("Database initialized", db_path=str(settings.db_path))
    print(f"Initialized {settings.db_path}")


def cmd_seed(args: argparse.Namespace) -> None:
    settings = _settings(args)
    engine = init_database(settings.db_path, timeout=settings.lock_timeout)
    with get_session_factory(engine)() as session:
        counts = seed_database(session)
    get_logger().info("Database seeded", db_path=str(settings.db_path), **counts)
    _emit(counts)


def cmd_pay(args: argparse.Namespace) -> None:
    settings = _settings(args)
    engine = SettlementEngine(
        unit_of_work_factory(_session_factory(settings)),
        max_retries=settings.max_retries,
        retry_delay=settings.retry_delay,
    )
    result = engine.pay_job(args.profile, args.job)
    job: JobRecord = result.unwrap()
    _emit(job_to_dict(job))


def cmd_deposit(args: argparse.Namespace) -> None:
    settings = _settings(args)
    guard = DepositGuard(
        unit_of_work_factory(_session_factory(settings)),
        max_retries=settings.max_retries,
        retry_delay=settings.retry_delay,
    )
    balance = guard.deposit(args.client, args.amount).unwrap()
    _emit({"client_id": args.client, "balance": balance})


def cmd_contract(args: argparse.Namespace) -> None:
    with _session_factory(_settings(args))() as session:
        _resolve_profile(session, args.profile)
        contract = get_contract(session, args.id, args.profile)
        if contract is None:
            raise NotFoundError(f"contract {args.id} not found")
        _emit(contract_to_dict(contract))


def cmd_contracts(args: argparse.Namespace) -> None:
    with _session_factory(_settings(args))() as session:
        _resolve_profile(session, args.profile)
        _emit([contract_to_dict(c) for c in list_contracts(session, args.profile)])


def cmd_unpaid(args: argparse.Namespace) -> None:
    with _session_factory(_settings(args))() as session:
        _resolve_profile(session, args.profile)
        jobs: List[Job] = unpaid_jobs(session, args.profile)
        _emit([job_to_dict(j) for j in jobs])


def cmd_best_profession(args: argparse.Namespace) -> None:
    with _session_factory(_settings(args))() as session:
        profession = best_profession(session, args.start, args.end)
    if profession is None:
        raise NotFoundError("no profession earned anything between those dates")
    _emit({"profession": profession})


def cmd_best_clients(args: argparse.Namespace) -> None:
    with _session_factory(_settings(args))() as session:
        _emit(best_clients(session, args.start, args.end, limit=args.limit))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="contractbook", description="Contracts, jobs and balance settlement")
    parser.add_argument("--version", action="store_true", help="Print version and exit")
    subparsers = parser.add_subparsers(dest="command")

    def add(name: str, help_text: str, func):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--db", help="Path to SQLite database (default: $CONTRACTBOOK_DB or data/contractbook.db)")
        sub.set_defaults(func=func)
        return sub

    add("init-db", "Create the database schema", cmd_init_db)
    add("seed", "Load the sample data set (replaces existing rows)", cmd_seed)

    pay = add("pay", "Pay for a job as a party to its contract", cmd_pay)
    pay.add_argument("--profile", type=int, required=True, help="Acting profile id")
    pay.add_argument("--job", type=int, required=True, help="Job id")

    dep = add("deposit", "Deposit into a client's balance (max 25%% of outstanding jobs)", cmd_deposit)
    dep.add_argument("--client", type=int, required=True, help="Client profile id")
    dep.add_argument("--amount", required=True, help="Amount to deposit")

    con = add("contract", "Show a contract the profile is a party to", cmd_contract)
    con.add_argument("--profile", type=int, required=True, help="Acting profile id")
    con.add_argument("--id", type=int, required=True, help="Contract id")

    cons = add("contracts", "List the profile's non-terminated contracts", cmd_contracts)
    cons.add_argument("--profile", type=int, required=True, help="Acting profile id")

    unp = add("unpaid", "List unpaid jobs on the profile's non-terminated contracts", cmd_unpaid)
    unp.add_argument("--profile", type=int, required=True, help="Acting profile id")

    bp = add("best-profession", "Profession that earned the most between two dates", cmd_best_profession)
    bp.add_argument("--start", type=_parse_date, required=True, help="Start date (ISO 8601)")
    bp.add_argument("--end", type=_parse_end_date, required=True, help="End date (ISO 8601, a bare date includes that whole day)")

    bc = add("best-clients", "Clients that paid the most between two dates", cmd_best_clients)
    bc.add_argument("--start", type=_parse_date, required=True, help="Start date (ISO 8601)")
    bc.add_argument("--end", type=_parse_end_date, required=True, help="End date (ISO 8601, a bare date includes that whole day)")
    bc.add_argument("--limit", type=int, default=DEFAULT_BEST_CLIENTS_LIMIT, help="Number of clients (default 2)")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    load_env()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    if not hasattr(args, "func"):
        parser.print_help()
        return

    try:
        settings = _settings(args)
        get_logger(level=settings.log_level, log_dir=settings.log_dir)
        args.func(args)
    except ContractbookError as e:
        raise SystemExit(str(e))


if __name__ == "__main__":
    main()
