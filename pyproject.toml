[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bybit_spot"
version = "0.1.0"
description = "Client for the spot v1 REST endpoints and websocket streams of the Bybit exchange"
requires-python = ">=3.10"
keywords = ["bybit", "spot", "trading", "websocket", "exchange", "api-client"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial :: Investment",
]
dependencies = [
    "websockets",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["bybit_spot"]

[tool.pytest.ini_options]
addopts = "-ra"
