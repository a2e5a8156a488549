[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "omnims"
version = "0.1.0"
description = "Inventory and order management HTTP services: tenants, sellers, hubs, SKUs, stock, bulk CSV orders and webhooks"
requires-python = ">=3.10"
keywords = [
    "inventory",
    "orders",
    "warehouse",
    "webhooks",
    "csv",
    "flask",
    "http-api",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: Office/Business",
]
dependencies = [
    "flask>=2.2",
    "requests>=2.28",
    "pyyaml>=6.0",
    "redis>=4.5",
    "pymongo>=4.3",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
]

[project.scripts]
omnims-ims = "omnims.ims.app:main"
omnims-oms = "omnims.oms.server:main"

[tool.hatch.build.targets.wheel]
packages = ["omnims"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
