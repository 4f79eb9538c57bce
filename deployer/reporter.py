# deployer/reporter.py
from typing import Dict, List

from loguru import logger

from .config import DeploymentTarget
from .network import format_port_bindings, parse_docker_port_mapping


def format_status_table(rows: List[Dict]) -> str:
    header = ("NAMES", "STATUS", "PORTS")
    lines = [header]
    for row in rows:
        status = row.get("status") or ""
        health = row.get("health")
        if health is not None:
            status = f"{status} ({health.value})"
        lines.append((row.get("name") or "", status, format_port_bindings(row.get("ports"))))

    widths = [max(len(line[i]) for line in lines) for i in range(len(header))]
    return "\n".join(
        "   ".join(cell.ljust(widths[i]) for i, cell in enumerate(line)).rstrip()
        for line in lines
    )


class Reporter:
    """Prints the post-deploy summary. Never raises."""

    def __init__(self, target: DeploymentTarget, engine):
        self.target = target
        self.engine = engine

    def status_table(self) -> str:
        try:
            rows = self.engine.container_summary(self.target.container_name)
        except Exception as e:
            logger.warning(f"Could not fetch container status: {e}")
            return ""
        self.check_published_ports(rows)
        return format_status_table(rows)

    def check_published_ports(self, rows: List[Dict]) -> bool:
        """Warn when the runtime published a different host port than configured."""
        ok = True
        for row in rows:
            published = parse_docker_port_mapping(row.get("ports"))
            if published is None:
                logger.warning(f"{row.get('name')} has no published host port")
                ok = False
            elif published != self.target.host_port:
                logger.warning(
                    f"{row.get('name')} is published on port {published}, "
                    f"expected {self.target.host_port}"
                )
                ok = False
        return ok

    def report(self):
        t = self.target
        logger.info("=== Deployment Complete ===")
        logger.info(f"Application URL: {t.url}")
        logger.info(f"Health Check: {t.health_url}")
        logger.info(f"Container Name: {t.container_name}")
        logger.info(f"Image: {t.image_ref}")
        logger.info("Container Status:")
        table = self.status_table()
        if table:
            for line in table.splitlines():
                logger.info(line)
        logger.info(f"To view logs: docker logs {t.container_name}")
        logger.info(f"To stop: docker stop {t.container_name}")
