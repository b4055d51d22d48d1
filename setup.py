"""Setup script for the slidecite package."""
from setuptools import setup, find_packages

setup(
    name="slidecite",
    version="1.0.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "requests>=2.25.0",
        "python-docx>=0.8.11",
        "python-pptx>=1.0.0",
        "aiohttp>=3.8.0",
        "flask>=2.2.0",
        "python-dotenv>=0.19.0",
        "jsonschema>=4.0.0",
    ],
    extras_require={
        "test": ["pytest>=7.0.0"],
    },
    entry_points={
        "console_scripts": ["slidecite=slidecite.__main__:main"],
    },
    python_requires=">=3.8",
    author="Stenford Ruvinga",
    author_email="stenford41@hotmail.com",
    description="Per-slide citations for PowerPoint decks, backed by Zotero",
    long_description=open("README.md", encoding="utf-8").read(),
    long_description_content_type="text/markdown",
    keywords="citation zotero powerpoint pptx bibliography",
    include_package_data=True,
    classifiers=[
        "Development Status :: 5 - Production/Stable",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Topic :: Office/Business :: Office Suites",
    ],
)
