"""
STDM package: a Statistical Time-Division Multiplexer simulator.

Design goals:
- deterministic output: identical input text gives byte-identical frames
- frame geometry derived once from aggregate source statistics
- run-based artifact generation (frames, diagnostics, JSONL event log)
"""
