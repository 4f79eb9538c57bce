# deployer/__init__.py
"""Build, replace and health-check a single containerized static site."""
