[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dlqueue"
version = "0.1.0"
description = "Terminal download manager with scheduled queues, parallel ranged downloads and bandwidth limits"
requires-python = ">=3.10"
dependencies = [
    "blessed",
]
keywords = ["download", "download-manager", "http", "queue", "terminal", "tui"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
dlqueue = "dlqueue.app:main"

[tool.hatch.build.targets.wheel]
packages = ["dlqueue"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
