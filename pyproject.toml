[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sensorsrv"
version = "0.1.0"
description = "Sensor sampling server that streams timestamped readings to TCP clients"
requires-python = ">=3.10"
dependencies = []
keywords = ["sensors", "telemetry", "streaming", "ring-buffer", "adc", "max31865"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
sensorsrv = "sensorsrv.app:main"

[tool.hatch.build.targets.wheel]
packages = ["sensorsrv"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
