"""
CLI for running a single program in a boxrun sandbox.
"""
import argparse
import logging
import os
import shutil
import sys
from typing import List, Optional, Sequence

from boxrun.cli.models import HostInfo, RunReport
from boxrun.config.defaults import METRICS_DEFAULTS, get_default_tools
from boxrun.config.logging import setup_logging
from boxrun.exceptions import BoxrunError
from boxrun.observability.metrics import init_metrics, shutdown_metrics
from boxrun.sandbox import EnvironmentVariable, Sandbox, SandboxConfig, default_config
from boxrun.sandbox.factory import create_backend

logger = logging.getLogger(__name__)

# Name the staged program gets inside the sandbox root.
STAGED_PROGRAM = "program"

EXIT_OK = 0
EXIT_PROGRAM_FAILED = 1
EXIT_INFRASTRUCTURE_ERROR = 2

PLATFORM_TOOLS = {
    "isolate": ("isolate",),
    "jails": ("jail", "jexec", "rctl", "timeout", "limits"),
}


def parse_env(values: Optional[List[str]]) -> List[EnvironmentVariable]:
    """Turn NAME or NAME=VALUE strings into environment entries."""
    variables = []
    for item in values or []:
        name, _, value = item.partition("=")
        if not name:
            raise ValueError(f"Invalid environment entry: {item!r}")
        variables.append(EnvironmentVariable(name, value))
    return variables


def build_config(args: argparse.Namespace) -> SandboxConfig:
    baseline = default_config()
    return SandboxConfig(
        cpu_time_limit=args.cpu_time,
        wall_time_limit=args.wall_time,
        memory_limit=args.memory,
        stack_limit=args.stack,
        max_processes=args.processes,
        share_network=args.share_net,
        full_environment=args.full_env,
        environment=baseline.environment + parse_env(args.env),
    )


def stage_program(program: str, root: str) -> str:
    """Copy the program into the sandbox root and make it executable."""
    target = os.path.join(root, STAGED_PROGRAM)
    shutil.copyfile(program, target)
    os.chmod(target, 0o755)
    return STAGED_PROGRAM


def run_program(args: argparse.Namespace) -> int:
    if not os.path.isfile(args.program):
        logger.error(f"Program not found: {args.program}")
        return EXIT_INFRASTRUCTURE_ERROR

    try:
        config = build_config(args)
        box = Sandbox(args.box_id, config, platform=args.platform)
        with box:
            command = stage_program(args.program, box.path)
            result = box.run(command, args.args)
    except (BoxrunError, OSError, ValueError) as e:
        logger.error(f"Sandbox {args.box_id} failed: {e}")
        return EXIT_INFRASTRUCTURE_ERROR

    report = RunReport.from_result(args.box_id, box.backend.name, result)
    print(report.model_dump_json(indent=2))
    return EXIT_OK if result.ok else EXIT_PROGRAM_FAILED


def host_info(platform: Optional[str] = None) -> HostInfo:
    platform = platform or sys.platform
    try:
        backend = create_backend(0, platform)
    except BoxrunError:
        return HostInfo(platform=platform, supported=False)
    tool_paths = get_default_tools()
    tools = {
        tool_paths[name]: os.access(tool_paths[name], os.X_OK)
        for name in PLATFORM_TOOLS[backend.name]
    }
    return HostInfo(platform=platform, supported=True, backend=backend.name, tools=tools)


def show_info(args: argparse.Namespace) -> int:
    info = host_info(args.platform)
    print(info.model_dump_json(indent=2))
    return EXIT_OK if info.supported else EXIT_INFRASTRUCTURE_ERROR


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="boxrun",
        description="Run an untrusted program in a resource-limited sandbox",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (default: WARNING)",
    )
    parser.add_argument("--log-file", help="Log file path")
    parser.add_argument(
        "--platform",
        help="Pick the backend for this platform instead of the host's",
    )
    parser.add_argument(
        "--metrics-exporter",
        default=METRICS_DEFAULTS.exporter,
        choices=["none", "console", "otlp", "otlp_http"],
        help="Metrics exporter type (default: none)",
    )
    parser.add_argument(
        "--metrics-endpoint",
        help="OTLP endpoint URL (e.g., http://localhost:4317 for gRPC)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run a program in a fresh sandbox")
    run_parser.add_argument("--box-id", type=int, required=True, help="Sandbox id, unique among live sandboxes")
    run_parser.add_argument("--cpu-time", type=float, default=0, help="CPU time limit in seconds (default: none)")
    run_parser.add_argument("--wall-time", type=float, default=0, help="Wall time limit in seconds (default: none)")
    run_parser.add_argument("--memory", type=int, default=0, help="Memory limit in KB (default: none)")
    run_parser.add_argument("--stack", type=int, default=0, help="Stack limit in KB (default: none)")
    run_parser.add_argument(
        "--processes",
        type=int,
        default=0,
        help="Processes the program may create besides itself (default: unlimited)",
    )
    run_parser.add_argument("--share-net", action="store_true", help="Keep network access")
    run_parser.add_argument("--full-env", action="store_true", help="Inherit the whole environment")
    run_parser.add_argument(
        "--env",
        action="append",
        metavar="NAME[=VALUE]",
        help="Set a variable; without a value it is inherited (repeatable)",
    )
    run_parser.add_argument("program", help="Executable to copy into the sandbox and run")
    run_parser.add_argument("args", nargs=argparse.REMAINDER, help="Arguments for the program")

    subparsers.add_parser("info", help="Show the backend for this host and its tools")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level, args.log_file)

    if args.metrics_exporter != "none":
        exporter_kwargs = {}
        if args.metrics_endpoint:
            exporter_kwargs["endpoint"] = args.metrics_endpoint
        init_metrics(exporter_type=args.metrics_exporter, **exporter_kwargs)

    try:
        if args.command == "run":
            status = run_program(args)
        elif args.command == "info":
            status = show_info(args)
        else:
            parser.print_help()
            status = EXIT_INFRASTRUCTURE_ERROR
    finally:
        shutdown_metrics()

    sys.exit(status)


if __name__ == "__main__":
    main()
