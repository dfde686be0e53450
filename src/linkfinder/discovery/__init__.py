"""Seed sources, candidate generation and the HTTP existence check"""
from .generator import generate_candidates, iter_candidates, GenerationResult
from .seeds import load_seeds, seed_from_args, seed_from_record
from .listing import search_listing, search_programs, search_programs_batch, parse_listing, filter_by_title
from .http import HttpExistsCheck
