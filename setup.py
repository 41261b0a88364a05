"""Setup script for the hospital-capacity service following Cosmic Python pattern."""

from setuptools import setup, find_namespace_packages

setup(
    name="hospital-capacity",
    version="1.0.0",
    description="Hospital Capacity Service - bed/ICU capacity ingestion and recommendation",
    author="Hospital Capacity Team",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src", include=["hospital_capacity*"]),
    py_modules=["config"],
    python_requires=">=3.11",
    install_requires=[
        "fastapi",
        "uvicorn[standard]",
        "pydantic>=2",
        "sqlalchemy>=2,<2.1",
        "psycopg2-binary",
        "redis",
        "requests",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-cov",
            "httpx",
            "fakeredis",
        ],
        "dev": [
            "black",
            "flake8",
            "mypy",
            "pre-commit",
        ],
    },
    entry_points={
        "console_scripts": [
            "hospital-capacity-api=hospital_capacity.entrypoints.capacity_api:main",
            "hospital-capacity-consumer=hospital_capacity.entrypoints.redis_eventconsumer:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Healthcare Industry",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.11",
        "Topic :: Scientific/Engineering :: Medical Science Apps.",
    ],
)
