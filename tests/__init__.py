"""Test suite for ScreenSync.

Tests are hermetic: Playwright is replaced by mock chains and the release
feed by `responses`, so no browser or network is needed.
"""
