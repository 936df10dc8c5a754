""" update-dns: RFC 2136 dynamic DNS updates signed with TSIG """

__version__ = "1.0.0"
