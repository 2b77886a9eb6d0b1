"""Proxy: a stand-in that controls access to another object."""
