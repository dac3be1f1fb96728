"""Brace-matched span finder shared by both tool-call extractors.

Why: Model replies embed JSON objects inside prose.  A non-greedy regex such
as ``\\{.*?\\}`` stops at the first ``}`` even when it sits inside a string
value, so the extractors instead scan forward counting braces while tracking
whether the scanner is inside a JSON string literal.
"""


def find_matching_close(text: str, open_index: int) -> int:
    """Return the index just past the ``}`` matching the ``{`` at ``open_index``.

    Braces inside string literals are ignored; a backslash inside a string
    escapes exactly the next character.  When the object is never closed (or
    ``open_index`` does not point at ``{``) the input index is returned
    unchanged, which callers read as "no match".  A valid ``{}`` always
    returns ``open_index + 2``.
    """
    if open_index < 0 or open_index >= len(text) or text[open_index] != "{":
        return open_index

    depth = 0
    in_string = False
    escaped = False
    for index in range(open_index, len(text)):
        ch = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return index + 1
    return open_index
