"""Setup script for the Lasagna client."""
from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
  long_description = fh.read()

setup(
  name="lasagna",
  version="0.1.0",
  author="Lasagna Contributors",
  description="JWT-aware channel sessions over a Phoenix-style pub/sub socket",
  long_description=long_description,
  long_description_content_type="text/markdown",
  packages=find_packages(include=["lasagna", "lasagna.*"]),
  python_requires=">=3.11",
  install_requires=[
    "httpx>=0.25.0",
    "PyJWT>=2.4.0",
    "pydantic>=2.0",
  ],
  extras_require={
    "test": [
      "pytest>=7.4.0",
      "pytest-asyncio>=0.21.0",
    ],
  },
  classifiers=[
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Topic :: Software Development :: Libraries",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
  ],
)
