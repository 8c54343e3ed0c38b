[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ragsearch"
version = "0.1.0"
description = "Retrieval-augmented search: chunking, indexing into Elasticsearch, query parsing and local reranking."
requires-python = ">=3.10"
dependencies = [
    "httpx",
]
keywords = [
    "rag",
    "retrieval",
    "search",
    "elasticsearch",
    "chunking",
    "rerank",
    "hybrid-search",
]
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
    "Framework :: AsyncIO",
    "Natural Language :: Chinese (Simplified)",
    "Natural Language :: English",
    "Topic :: Internet :: WWW/HTTP :: Indexing/Search",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
ragsearch-ingest = "ragsearch.demo:ingest_main"
ragsearch-search = "ragsearch.demo:search_main"

[tool.hatch.build.targets.wheel]
packages = ["ragsearch"]

[tool.hatch.build.targets.sdist]
include = [
    "ragsearch",
    "tests",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
