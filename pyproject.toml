[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "toyc"
version = "0.1.0"
description = "Semantic analysis and RISC-V assembly generation for a small C-like language"
requires-python = ">=3.10"
dependencies = []
keywords = ["compiler", "risc-v", "assembly", "codegen", "semantic-analysis", "toy-language"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Compilers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["toyc"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
