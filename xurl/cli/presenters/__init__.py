"""Rich presenters for CLI output."""

from .response import AuthStatusPresenter, ResponsePresenter

__all__ = ["AuthStatusPresenter", "ResponsePresenter"]
