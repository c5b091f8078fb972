import posixpath


def normalize_path(path: str) -> str:
    """Return *path* relative to the mount root; the root itself is ``""``.

    Only ``/`` separates components; a backslash is an ordinary name character.
    """
    # Traversal check: simulate path resolution from root (depth 0)
    depth = 0
    for part in path.split("/"):
        if part == "..":
            depth -= 1
            if depth < 0:
                raise ValueError(f"Path traversal attempt detected: '{path}'")
        elif part and part != ".":
            depth += 1

    normalized = posixpath.normpath("/" + path.lstrip("/"))
    return normalized.lstrip("/")
