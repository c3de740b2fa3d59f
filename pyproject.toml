[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "catcore"
version = "0.1.0"
description = "Core building blocks for a chat agent: tiered filesystem memory, todo and skill tools."
requires-python = ">=3.10"
dependencies = [
    "httpx",
]
keywords = ["llm", "agent", "memory", "todo", "chatbot", "tools"]
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
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["catcore"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
