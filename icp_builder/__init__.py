"""
ICP Builder - Company Analysis & Prospect Qualification
=======================================================
A pipeline for building and using Ideal Customer Profiles:
  Domain Scraper: website -> structured company summary (cached)
  ICP Generator: company summary -> ICP with buyer personas
  Prospect Qualifier: prospect + ICP -> score, fit level, rationale
"""

__version__ = "1.0.0"
__author__ = "ICP Builder Team"
