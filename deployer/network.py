from typing import Any, Optional


def validate_port(value: Any) -> Optional[int]:
    """Return ``value`` as a TCP port number, or None when it is not one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not value.is_integer():
            return None
        value = int(value)
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            return None
    if not isinstance(value, int):
        return None
    if 1 <= value <= 65535:
        return value
    return None


def parse_docker_port_mapping(ports: Any) -> Optional[int]:
    """
    Extract the first published host port from whatever docker hands back.

    Accepts a plain int/str, the ``container.ports`` dict
    (``{'8080/tcp': [{'HostIp': '0.0.0.0', 'HostPort': '8080'}]}``) or a
    single binding list.
    """
    if ports is None:
        return None
    if isinstance(ports, (int, str)):
        return validate_port(ports)
    if isinstance(ports, dict):
        for bindings in ports.values():
            port = parse_docker_port_mapping(bindings)
            if port is not None:
                return port
        return None
    if isinstance(ports, list):
        for binding in ports:
            if isinstance(binding, dict) and "HostPort" in binding:
                port = validate_port(binding["HostPort"])
                if port is not None:
                    return port
        return None
    return None


def format_port_bindings(ports: Any) -> str:
    """Render ``container.ports`` the way ``docker ps`` prints the PORTS column."""
    if not isinstance(ports, dict):
        return ""
    rendered = []
    for container_port, bindings in sorted(ports.items()):
        if not bindings:
            rendered.append(container_port)
            continue
        for binding in bindings:
            host_ip = binding.get("HostIp") or "0.0.0.0"  # nosec
            rendered.append(f"{host_ip}:{binding.get('HostPort')}->{container_port}")
    return ", ".join(rendered)
