from setuptools import find_packages, setup

# Modules to compile
# Only the graph index is compiled; pydantic models stay interpreted.
modules = [
    "graphsql/graph.py",
]

# Check if we are in a build environment that supports compilation
# If mypy is not installed, or we explicitly disable it, we skip compilation.
# This allows 'pip install -e .' to work without compiling during dev.
try:
    from mypyc.build import mypycify

    ext_modules = mypycify(modules)
except (ImportError, RuntimeError):
    # Fallback to pure Python if mypyc is not present or fails
    ext_modules = []

setup(
    name="graphsql",
    version="1.0.0",
    description="Bidirectional compiler between visual pipeline graphs and SQL",
    packages=find_packages(include=["graphsql", "graphsql.*"]),
    python_requires=">=3.9",
    install_requires=[
        "pydantic>=2.0",
        "PyYAML>=6.0",
        "rich>=13.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    ext_modules=ext_modules,
)
