"""
# prdoc Core Library

This package contains the record models, the parser, the reporter and the
configuration and logging infrastructure the CLI depends on.
"""
