"""
# prdoc Technical Documentation

prdoc validates and aggregates "prdoc" changelog records: small YAML documents
that describe one pull request with a title, audience-tagged descriptions and
the crates it touches together with their semantic version bumps. These docs
are generated from the project's docstrings.

---

## Purpose

prdoc provides the building blocks for:
- Parsing record files, including files holding several records.
- Reporting per-record failures without dropping valid siblings.
- Grouping records by crate, bump level or audience into a release report.
- Managing configuration and console logging across modules.

---

## How to Use This Documentation

- Browse the **modules** listed in the sidebar to explore available APIs.
- Each public function includes argument and return value details.
- Private helpers (`_method`, `_Class`) are minimally documented.
"""

from importlib.metadata import version

__version__ = version("prdoc")
