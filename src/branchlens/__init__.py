"""branchlens - reconcile Git branches with an issue tracker."""

__version__ = "0.1.0"
