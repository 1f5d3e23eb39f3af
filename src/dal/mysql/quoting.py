def quote_identifier(name: str) -> str:
    """Quote a MySQL identifier with backticks, doubling embedded backticks."""
    if name is None or not str(name).strip():
        raise ValueError("Identifier must be a non-empty string.")
    if "\x00" in name:
        raise ValueError(f"Identifier contains a NUL character: {name!r}")
    return "`" + name.replace("`", "``") + "`"


def quote_identifiers(names) -> str:
    """Quote and comma-join a sequence of identifiers."""
    return ", ".join(quote_identifier(name) for name in names)
