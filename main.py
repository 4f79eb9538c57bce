import os
import sys

from loguru import logger
from pydantic import ValidationError

from deployer.config import DeploymentTarget
from deployer.errors import DeployError
from deployer.metrics import OPERATIONS_COUNTER, push_metrics
from deployer.pipeline import Deployer

COMMANDS = {
    "build": "Build Docker image only",
    "deploy": "Full deployment (default)",
    "stop": "Stop running container",
    "logs": "Show container logs",
    "clean": "Remove container and image",
}

LOG_FORMAT = "<level>[{time:YYYY-MM-DD HH:mm:ss}] {level}: {message}</level>"


def configure_logging(level=None):
    logger.remove()
    logger.add(
        sys.stdout,
        format=LOG_FORMAT,
        level=level or os.getenv("DEPLOY_LOG_LEVEL", "INFO").upper(),
        colorize=None,
    )


def usage(prog: str) -> str:
    lines = [f"Usage: {prog} {{{'|'.join(COMMANDS)}}}"]
    lines += [f"  {name:<6} - {help_text}" for name, help_text in COMMANDS.items()]
    return "\n".join(lines)


def dispatch(command: str, deployer: Deployer):
    handler = getattr(deployer, command)
    return handler()


def main(argv=None, deployer=None) -> int:
    argv = sys.argv if argv is None else argv
    prog = os.path.basename(argv[0]) if argv else "main.py"
    command = argv[1] if len(argv) > 1 else "deploy"

    if command not in COMMANDS:
        print(usage(prog))
        return 1

    try:
        target = deployer.target if deployer else DeploymentTarget.from_env()
    except ValidationError as e:
        logger.error(f"Invalid deployment configuration: {e}")
        return 1

    deployer = deployer or Deployer(target)
    outcome = "failed"
    try:
        dispatch(command, deployer)
        outcome = "ok"
        return 0
    except DeployError as e:
        logger.error(str(e))
        return e.exit_code
    except KeyboardInterrupt:
        outcome = "interrupted"
        logger.warning("Interrupted")
        return 130
    finally:
        OPERATIONS_COUNTER.labels(command=command, outcome=outcome).inc()
        if target.pushgateway_url:
            push_metrics(target.pushgateway_url, job=target.project_name)


def run():
    configure_logging()
    sys.exit(main())


if __name__ == "__main__":
    run()
