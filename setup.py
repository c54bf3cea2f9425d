# setup.py
from setuptools import setup, find_namespace_packages

setup(
    name="ndepe",
    version="0.1.0",
    description="Emit a minimal production node_modules tree from a traced Node.js application",
    python_requires=">=3.9",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src", include=["ndepe", "ndepe.*"]),
    install_requires=[
        "node-semver",  # Loose semver comparison of package versions
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        'console_scripts': [
            'ndepe=ndepe.interface.cli.app:main',
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)
