"""
tucksql - Lightweight SQL ORM

A lazy query builder, active-record entities with soft deletes and
relationships, named connections and SQL-file migrations.
"""

from setuptools import setup, find_packages
import os

# Read README for long description
def read_long_description():
    readme_path = os.path.join(os.path.dirname(__file__), 'README.md')
    if os.path.exists(readme_path):
        with open(readme_path, 'r', encoding='utf-8') as f:
            return f.read()
    return ""

# Define optional dependencies
extras_require = {
    # SQLAlchemy dialect drivers for server databases
    'mysql': [
        'pymysql>=1.0',
    ],
    'postgresql': [
        'psycopg[binary]>=3.1',
    ],

    # Test dependencies
    'test': [
        'pytest>=7.0',
    ],

    # Development dependencies
    'dev': [
        'mypy>=0.950',
        'build>=0.7.0',
        'twine>=4.0.0',
    ],
}

# Full development environment
extras_require['full'] = (
    extras_require['test'] +
    extras_require['dev']
)

setup(
    name="tucksql",
    version="0.1.0",
    author="go9sky",
    author_email="",
    description="Lightweight SQL ORM - lazy query builder, active record, SQL-file migrations",
    long_description=read_long_description(),
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=['examples', 'examples.*', 'tests', 'tests.*']),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Database",
        "Topic :: Database :: Front-Ends",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Typing :: Typed",
    ],
    python_requires=">=3.10",

    # Core dependencies (connections are built on SQLAlchemy, the CLI on typer)
    install_requires=[
        'sqlalchemy>=2.0',
        'typer>=0.9',
    ],

    # Optional dependencies
    extras_require=extras_require,

    entry_points={
        'console_scripts': [
            'tucksql=tucksql.cli.main:app',
        ],
    },

    # Project metadata
    keywords="database orm sql query-builder active-record migrations sqlite tucksql",
)
