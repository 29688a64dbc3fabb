"""Single-line delimited field splitting."""

QUOTE = '"'


def parse_line(line: str, delimiter: str) -> list[str]:
    """Split one raw line into fields.

    Double-quoted fields may contain the delimiter, and ``""`` inside quotes
    is an escaped literal quote. An unterminated quote runs to the end of
    the line. Fields are returned verbatim; trimming is left to the caller.

    Args:
        line: Raw line without its line terminator
        delimiter: Field delimiter (only the first character is used)

    Returns:
        List of field strings (at least one, possibly empty)
    """
    delim = delimiter[0] if delimiter else ","
    fields = []
    current = []
    in_quotes = False
    i = 0
    length = len(line)

    while i < length:
        char = line[i]
        if char == QUOTE:
            if in_quotes and i + 1 < length and line[i + 1] == QUOTE:
                current.append(QUOTE)
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == delim and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
        i += 1

    fields.append("".join(current))
    return fields
