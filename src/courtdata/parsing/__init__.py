from .portal import EcourtsPortalParser, PortalParser

__all__ = ["EcourtsPortalParser", "PortalParser"]
