"""
Test suite for BIOVERSE structure resolution

All HTTP traffic is served by httpx.MockTransport; no test touches the network.
"""
