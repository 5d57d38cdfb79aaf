"""Ballotbox — single-election voting workflow with an administrator-driven phase chain."""

__version__ = "0.1.0"
