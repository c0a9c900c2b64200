"""CLI entry point for running an allocation session over a participant snapshot."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Sequence, Tuple

from taskalloc.allocation import (
    Action,
    AllocationOrchestrator,
    PolicyLoadingError,
    PolicyMode,
    Snapshot,
    allocation_frame,
    build_run_report,
    load_policy,
    load_roster,
    load_snapshot,
    write_allocation_frame,
    write_run_report,
)
from taskalloc.core.config import EngineConfig
from taskalloc.core.errors import EngineError
from taskalloc.core.logging import run_log
from taskalloc.core.paths import RunPaths

logger = logging.getLogger(__name__)


def _index_value(raw: str) -> Tuple[int, str]:
    index, sep, value = raw.partition("=")
    if not sep:
        raise argparse.ArgumentTypeError(f"expected IDX=VALUE, got {raw!r}")
    try:
        return int(index), value
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"row index must be an integer, got {index!r}") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Distribute a pool of work units across participants")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--snapshot", type=Path, help="YAML/JSON snapshot with base_capacity and participants")
    source.add_argument("--roster", type=Path, help="CSV/Parquet roster with participant_id and current_load")
    parser.add_argument("--base-capacity", type=int, default=None, help="Base capacity when reading a roster")
    parser.add_argument("--policy", type=Path, default=None, help="Engine policy YAML (defaults to the bundled policy)")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in PolicyMode],
        default=None,
        help="Allocation policy to run (defaults to the policy's default_mode)",
    )
    parser.add_argument("--add", type=_index_value, action="append", default=[], metavar="IDX=N", help="Add N units to row IDX (unconstrained)")
    parser.add_argument("--subtract", type=_index_value, action="append", default=[], metavar="IDX=N", help="Take N units from row IDX (unconstrained)")
    parser.add_argument("--exclude", type=int, action="append", default=[], metavar="IDX", help="Exclude row IDX")
    parser.add_argument("--lock", type=_index_value, action="append", default=[], metavar="IDX=PCT", help="Lock row IDX at PCT percent (proportional)")
    parser.add_argument("--pool", type=str, default=None, help="Pool to distribute (distributed policies)")
    parser.add_argument("--chunk", type=str, default=None, help="Units per participant (fixed_per_participant)")
    parser.add_argument("--commit", action="store_true", help="Fold the allocation into participant loads")
    parser.add_argument("--report", type=Path, default=None, help="Write the run report JSON here")
    parser.add_argument("--output", type=Path, default=None, help="Write the allocation table (.csv or .parquet)")
    parser.add_argument("--log-file", type=Path, default=None, help="Mirror logs to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log allocator detail at DEBUG")
    parser.add_argument("--runs-root", type=Path, default=None, help="Root for run-scoped outputs")
    parser.add_argument("--run-id", type=str, default=None, help="Write report, table and log under <runs-root>/<run-id>")
    return parser


def _load_source(args: argparse.Namespace, parser: argparse.ArgumentParser) -> Snapshot:
    if args.snapshot is not None:
        return load_snapshot(args.snapshot)
    if args.base_capacity is None:
        parser.error("--base-capacity is required with --roster")
    return load_roster(args.roster, base_capacity=args.base_capacity)


_MODE_FLAGS = {
    "--add": PolicyMode.UNCONSTRAINED,
    "--subtract": PolicyMode.UNCONSTRAINED,
    "--lock": PolicyMode.PROPORTIONAL_EVEN,
    "--chunk": PolicyMode.FIXED_PER_PARTICIPANT,
}


def _check_mode_flags(
    args: argparse.Namespace,
    parser: argparse.ArgumentParser,
    mode: PolicyMode,
) -> None:
    given = {
        "--add": bool(args.add),
        "--subtract": bool(args.subtract),
        "--lock": bool(args.lock),
        "--chunk": args.chunk is not None,
        "--pool": args.pool is not None,
    }
    for flag, required in _MODE_FLAGS.items():
        if given[flag] and mode is not required:
            parser.error(f"{flag} only applies to --mode {required.value} (running {mode.value})")
    if given["--pool"] and mode is PolicyMode.UNCONSTRAINED:
        parser.error(f"--pool only applies to distributed policies (running {mode.value})")


def _run_session(orchestrator: AllocationOrchestrator, args: argparse.Namespace) -> None:
    for index in args.exclude:
        orchestrator.set_action(index, Action.EXCLUDE)

    if orchestrator.mode is PolicyMode.UNCONSTRAINED:
        for index, value in args.subtract:
            orchestrator.set_action(index, Action.SUBTRACT)
            orchestrator.edit_change(index, value)
        for index, value in args.add:
            orchestrator.edit_change(index, value)
        return

    if orchestrator.mode is PolicyMode.PROPORTIONAL_EVEN:
        for index, value in args.lock:
            orchestrator.set_percent(index, value)
    if orchestrator.mode is PolicyMode.FIXED_PER_PARTICIPANT and args.chunk is not None:
        orchestrator.request_chunk(args.chunk)
    if args.pool is not None:
        orchestrator.request_pool(args.pool)
    orchestrator.apply()


def _print_table(orchestrator: AllocationOrchestrator) -> None:
    state = orchestrator.snapshot()
    print(f"mode: {state.mode.value}  base_capacity: {orchestrator.base_capacity}  effective_pool: {orchestrator.effective_pool()}")
    for index, participant in enumerate(orchestrator.participants):
        label = participant.name or participant.participant_id
        line = (
            f"{index:>3} {label:<16} load={participant.current_load:<5} "
            f"action={state.action[index].value:<8} change={state.pending_change[index]:<5} "
            f"pending_total={orchestrator.pending_total(index)}"
        )
        if state.mode is PolicyMode.PROPORTIONAL_EVEN:
            lock_flag = "locked" if state.weight_locked[index] else "implicit"
            line += f" percent={state.weight_percent[index]} ({lock_flag})"
        print(line)


def _execute(
    args: argparse.Namespace,
    parser: argparse.ArgumentParser,
    config: EngineConfig,
    report_path: Path | None,
    output_path: Path | None,
) -> int:
    try:
        policy = load_policy(config.policy_path)
        snapshot = _load_source(args, parser)
        orchestrator = AllocationOrchestrator(
            snapshot.participants,
            snapshot.base_capacity,
            policy=policy,
            mode=args.mode,
        )
        _check_mode_flags(args, parser, orchestrator.mode)
        _run_session(orchestrator, args)
        _print_table(orchestrator)
        state = orchestrator.snapshot()
        frame = allocation_frame(orchestrator.participants, state)
        report = dict(
            build_run_report(
                state=state,
                base_capacity=orchestrator.base_capacity,
                policy=policy,
                committed=args.commit,
            )
        )
        if args.commit:
            result = orchestrator.commit()
            report["base_capacity_after_commit"] = result.base_capacity
            report["loads_after_commit"] = {
                participant.participant_id: participant.current_load
                for participant in result.participants
            }
            print(f"committed: base_capacity now {result.base_capacity}")
    except (EngineError, PolicyLoadingError) as exc:
        logger.error("allocation failed: %s", exc)
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if output_path is not None:
        write_allocation_frame(frame, output_path)
        print(f"allocation table: {output_path}")
    if report_path is not None:
        write_run_report(report, report_path)
        print(f"run report: {report_path}")
    else:
        logger.info("run report %s", json.dumps(report, sort_keys=True))
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = EngineConfig.default()
    if args.policy is not None:
        config = config.with_policy(args.policy)
    if args.runs_root is not None:
        config = config.with_runs_root(args.runs_root)

    report_path = args.report
    output_path = args.output
    log_path = args.log_file
    if args.run_id:
        run_paths = RunPaths(runs_root=config.runs_root, run_id=args.run_id)
        report_path = report_path or run_paths.report_path
        output_path = output_path or run_paths.frame_path
        log_path = log_path or run_paths.log_path

    level = logging.DEBUG if args.verbose else None
    with run_log(log_path, level=level):
        return _execute(args, parser, config, report_path, output_path)


if __name__ == "__main__":
    sys.exit(main())
