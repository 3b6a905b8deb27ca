[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "smognet"
version = "0.1.0"
description = "Networking core for a multiplayer particle game: game packets, timed broadcast queues, handshake messages, map file layout and lobby/game servers."
requires-python = ">=3.10"
dependencies = []
keywords = ["game", "multiplayer", "networking", "packets", "asyncio", "server"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Framework :: AsyncIO",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Games/Entertainment",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["smognet"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
