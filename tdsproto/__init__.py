"""Building blocks for the SQL Server TDS wire protocol: packet framing,
token and type metadata parsing, value framing, instance discovery and
TLS handshake wrapping."""

__version__ = "0.1.0"

__all__ = [
    "col_meta_data",
    "done",
    "packet",
    "query_result",
    "read",
    "return_value",
    "ssrp",
    "tds_types",
    "tls",
    "token",
    "type_info",
    "values",
]