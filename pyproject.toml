[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "brisksocket"
version = "0.10.0"
description = "A small asyncio RFC 6455 WebSocket implementation with frame parsing, fragment collection and HTTP upgrades"
requires-python = ">=3.10"
dependencies = []
keywords = ["websocket", "rfc6455", "asyncio", "network", "protocol"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Framework :: AsyncIO",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
    "hypothesis",
]

[project.scripts]
brisksocket-echo = "brisksocket.echo_server:main"
brisksocket-autobahn = "brisksocket.autobahn_client:main"

[tool.hatch.build.targets.wheel]
packages = ["brisksocket"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
