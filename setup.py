from setuptools import find_packages, setup

setup(
    name="artifact-downloader",
    version="0.1.0",
    description="Search and download build artifacts from App Store Connect "
    "and Firebase App Distribution",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.10",
    install_requires=[
        "aiohttp",
        "aiofiles",
        "google-auth",
        "cryptography",
        "requests",
        "pick",
        "PyYAML",
        "platformdirs",
        "rich",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "pytest-mock",
        ],
    },
    entry_points={
        "console_scripts": [
            "artifacts-cli=artifact_downloader.cli:main",
        ],
    },
)
