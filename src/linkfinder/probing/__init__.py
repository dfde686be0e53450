"""Concurrent existence checks"""
from .prober import probe, Prober, ProbeResult, SessionDiagnostics, ExistsCheck
