[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "janusmsg"
version = "2.0.0"
description = "Command and response messages, length-prefixed framing and asyncio response correlation for datagram socket APIs"
requires-python = ">=3.10"
dependencies = []
keywords = ["ipc", "json-rpc", "framing", "messaging", "asyncio"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest", "pytest-asyncio"]

[tool.hatch.build.targets.wheel]
packages = ["janusmsg"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
