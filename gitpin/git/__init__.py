"""
Git operations for gitpin.

Everything that talks to dulwich lives here: credentials for the transport
(auth), worktree and object storage backends (storage) and the fetch and
checkout of a single commit (checkout).
"""
