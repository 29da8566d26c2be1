"""
ICP Signal Monitor - Buying-Signal Pipeline
===========================================
Watches public content for companies that match an Ideal Customer Profile
and flags the posts that look like active buying signals:
  Stage 1: ICP Matching (deterministic criteria scoring)
  Stage 2: Signal Classification (LLM with keyword fallback)
  Stage 3: Structured Output (JSON events, run batches, rolling summary)
Company knowledge and signal history are kept in file-backed memory.
"""

__version__ = "1.0.0"
__author__ = "ICP Signal Monitor Team"
