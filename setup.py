"""
Setup script for the zocr image-to-text node.
"""

from setuptools import setup, find_packages

setup(
    name="zocr",
    version="0.1.0",
    description="Image-to-text flow node backed by a bounded pool of OCR engines",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    author="zocr Team",
    python_requires=">=3.10",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "pydantic>=2.0.0",
        "pillow>=10.0.0",
        "numpy>=1.24.0",
        "pytesseract>=0.3.10",
        "httpx>=0.25.0",
        "python-dotenv>=1.0.0",
        "rich>=13.0.0",
    ],
    extras_require={
        "easyocr": [
            "easyocr>=1.7.0",
        ],
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "zocr=zocr.main:cli",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
