from loguru import logger
from prometheus_client import CollectorRegistry, Counter, Gauge, push_to_gateway

REGISTRY = CollectorRegistry()

OPERATIONS_COUNTER = Counter(
    'deployer_operations_total',
    'Total number of deployer commands run, by outcome',
    ['command', 'outcome'],
    registry=REGISTRY,
)

HEALTH_POLL_COUNTER = Counter(
    'deployer_health_poll_attempts_total',
    'Total number of container health status queries',
    registry=REGISTRY,
)

DEPLOY_DURATION_GAUGE = Gauge(
    'deployer_last_deploy_duration_seconds',
    'Wall time of the most recent successful deploy',
    registry=REGISTRY,
)


def push_metrics(gateway: str, job: str = "deployer") -> bool:
    """Push the registry to a Pushgateway; a short-lived CLI cannot be scraped."""
    try:
        push_to_gateway(gateway, job=job, registry=REGISTRY)
        return True
    except Exception as e:
        logger.warning(f"Could not push metrics to {gateway}: {e}")
        return False
