"""Tests for :mod:`auth_tkt.auth`."""
