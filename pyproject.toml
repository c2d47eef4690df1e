[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "exprdiff"
version = "0.1.0"
description = "Expression trees with reverse-mode gradients, Hessian-vector products, nonlinear-structure detection and lazy expression evaluation"
requires-python = ">=3.10"
dependencies = []
keywords = ["automatic differentiation", "hessian", "gradient", "expression tree", "lazy evaluation"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries",
    "Topic :: Scientific/Engineering :: Mathematics",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["exprdiff"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
