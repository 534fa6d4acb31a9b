from setuptools import setup, find_packages

setup(
    name="mkdocs-doxyman",
    version="1.0.0",
    description="Man pages from Doxygen XML, as a CLI and an MkDocs plugin",
    keywords="mkdocs doxygen man troff c documentation python",
    packages=find_packages(exclude=["tests"]),
    python_requires=">=3.9",
    install_requires=[
        "mkdocs>=1.4",
        "lxml>=4.9",
    ],
    extras_require={
        "test": ["pytest"],
    },
    classifiers = [
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Documentation",
        "Topic :: Software Development :: Documentation",
        "Framework :: MkDocs",
    ],
    entry_points={
        "mkdocs.plugins": [
            "doxyman = mkdocs_doxyman.plugin:ManPagePlugin",
        ],
        "console_scripts": [
            "doxygen2man = mkdocs_doxyman.cli:main",
        ],
    },
)
