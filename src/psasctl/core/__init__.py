"""Core console implementation.

This package contains everything the commands are built from:
- Raw key decoding and the scoped raw terminal session
- The selection engine and the filterable entity picker
- Identifier resolution shared by all user kinds
- The credential record store
- Backends for the panel, TrustTunnel and Dante SOCKS services
- The exception hierarchy

Nothing in here parses command line flags or prints outside of the
prompt handler it is given.
"""
