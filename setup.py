#!/usr/bin/env python
"""
FeedView - Live camera image feed with AI analysis
Split-view slideshow over an S3-compatible image feed
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read the contents of README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text()

setup(
    name="feedview",
    version="0.1.0",
    author="Your Name",
    author_email="your.email@example.com",
    description="Live camera image feed viewer with AI analysis",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/yourusername/feedview",
    packages=find_packages(include=["core", "core.*", "modules", "modules.*", "feedview", "feedview.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Multimedia :: Graphics :: Viewers",
        "Topic :: Scientific/Engineering :: Image Recognition",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: POSIX :: Linux",
    ],
    python_requires=">=3.10",
    install_requires=[
        "boto3>=1.28.0",
        "botocore>=1.31.0",
        "requests>=2.31.0",
        "gradio_client>=1.3.0",
        "httpx>=0.24.0",
        "Pillow>=10.0.0",
        "pyyaml>=6.0.1",
        "python-dotenv>=1.0.0",
        "coloredlogs>=15.0.1",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "pytest-asyncio>=0.21.0",
            "pytest-mock>=3.12.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
            "mypy>=1.5.0",
            "isort>=5.12.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "feedview=feedview.cli:main",
        ],
    },
    include_package_data=True,
    package_data={
        "": ["config/*.yaml"],
    },
    keywords="camera image-feed slideshow s3 minio object-detection gradio",
    project_urls={
        "Bug Reports": "https://github.com/yourusername/feedview/issues",
        "Source": "https://github.com/yourusername/feedview",
    },
)
