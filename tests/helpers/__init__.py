"""Test helper modules for the hieraedit test suite.

- pn: builders for PN artifact JSON
- workspace: on-disk workspace/environment builder
- fakes: in-memory resolver for expression-level tests
- io_utils: YAML/JSON/text writers
- certs: self-signed certificates for eyaml tests
"""
from __future__ import annotations
