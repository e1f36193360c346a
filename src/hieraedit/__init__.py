"""
hieraedit - per-node configuration resolution for Puppet/Hiera code trees

hieraedit resolves classes, defined types and functions from pre-parsed
manifest artifacts against a node's facts and its Hiera hierarchy, and
reports which hierarchy level produced each property value.
"""

__version__ = "0.4.0"
__all__ = ["__version__"]
