"""Exceptions raised by branchlens."""


class BranchLensError(Exception):
    """Base exception for branchlens errors"""
    pass


class GitRepositoryError(BranchLensError, ValueError):
    """Raised when a path is not a usable Git repository"""
    pass
