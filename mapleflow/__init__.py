"""Header layouts, packet parsing, trace recording, trace trees and spanning trees."""

__version__ = "0.1.0"