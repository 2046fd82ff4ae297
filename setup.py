from setuptools import setup, find_packages
import os

# Read the contents of README file
this_directory = os.path.abspath(os.path.dirname(__file__))
try:
    with open(os.path.join(this_directory, 'README.md'), encoding='utf-8') as f:
        long_description = f.read()
except FileNotFoundError:
    long_description = "Live Ladder - Live RTMP ingest to adaptive HLS orchestrator"

setup(
    name="live-ladder",
    version="1.0.0",
    description="Live RTMP ingest to multi-resolution HLS orchestrator driving ffmpeg",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Multimedia :: Video :: Conversion",
    ],
    python_requires=">=3.8",
    install_requires=[
        "tqdm>=4.0.0",
        "psutil>=5.0.0",
        "fastapi>=0.100.0",
        "uvicorn>=0.20.0",
        "python-multipart>=0.0.6",
    ],
    extras_require={
        "dev": [
            "pytest",
            "httpx",
            "black",
            "flake8",
        ],
    },
    entry_points={
        "console_scripts": [
            "live-ladder=live_ladder.cli:main_serve",
            "live-ladder-sweep=live_ladder.cli:main_sweep",
        ],
    },
    include_package_data=True,
    zip_safe=False,
)
