"""
Peer Discovery Module

Finds running instances of a cooperating application on the local network by
enumerating every address of each attached IPv4 subnet and probing it with a
bounded-timeout TCP connection attempt.
"""

__version__ = "1.0.0"
__author__ = "Peer Discovery Team"
