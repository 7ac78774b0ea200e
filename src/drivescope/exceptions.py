# exceptions.py


class PermanentError(Exception):
    """An error that will not be fixed by a retry (e.g., a missing file)."""
    pass


class TransientError(Exception):
    """A temporary error (e.g., a network failure) that might resolve on a retry."""
    pass


class ScopeViolationError(PermanentError):
    """The target or destination lies outside the sandbox root folder."""

    def __init__(self, node_id: str, message: str = "Not allowed"):
        self.node_id = node_id
        super().__init__(f"{message}: '{node_id}' is outside the sandbox folder.")


class NodeNotFoundError(PermanentError):
    """Google Drive reports that the requested ID does not exist."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Item with ID '{node_id}' not found in Google Drive.")


class AmbiguousRootError(PermanentError):
    """More than one folder carries the configured sandbox root name."""

    def __init__(self, name: str, candidate_ids: list[str]):
        self.name = name
        self.candidate_ids = candidate_ids
        super().__init__(
            f"Found {len(candidate_ids)} folders named '{name}' "
            f"({', '.join(candidate_ids)}). Rename or trash the extra ones."
        )


class AuthenticationRequiredError(PermanentError):
    """No stored tokens exist yet; the OAuth flow has to be completed first."""
    pass
