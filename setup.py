from setuptools import setup, find_packages

setup(
    name="bundle-patcher",
    version="0.1.0",
    packages=find_packages(exclude=["tests*"]),
    python_requires=">=3.10",
    install_requires=[
        "requests",
        "pyyaml",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "bundle-patcher=bundle_patcher.cli:main",
        ],
    },
    description="Regex-based patcher for minified JavaScript CLI bundles.",
)
