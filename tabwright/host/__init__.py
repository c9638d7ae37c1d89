"""Concrete tab hosts."""

from tabwright.host.http_host import HttpPageHost, parse_html

__all__ = ["HttpPageHost", "parse_html"]
