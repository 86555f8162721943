from setuptools import find_packages, setup

setup(
    name="quasilisp",
    version="0.1",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    license="MIT License",
    description="Macro expansion and syntax quote templates for a Clojure-like lisp",
    python_requires=">=3.9",
    install_requires=[
        "attrs>=22.2.0",
        "immutables>=0.20,<1.0.0",
        "pyrsistent>=0.18.0,<1.0.0",
        "typing_extensions>=4.7.0,<5.0.0",
    ],
    extras_require={
        "test": ["pytest>=7.0.0,<9.0.0"],
    },
)
