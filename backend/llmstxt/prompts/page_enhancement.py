"""Prompt for rewriting page titles and descriptions."""

PAGE_ENHANCEMENT_PROMPT = """You enhance webpage titles and descriptions so they are more descriptive and meaningful.
Your task is to ENHANCE METADATA ONLY - DO NOT FILTER OR REMOVE ANY URLS.

## Task

For each URL provided, create:
1. An enhanced title that is more descriptive (25-60 characters)
2. An enhanced description (100-200 characters) if one doesn't already exist

## Output Format

Return ONLY a valid JSON array with one object per URL:
[
  {
    "url": "https://www.bbc.com/arts",
    "enhancedTitle": "BBC Arts: Explore Global Arts and Culture",
    "enhancedDescription": "Dive into BBC Arts for coverage of theatre, opera, classical music, dance, and visual arts from around the world."
  }
]

## Important

- Return data for EVERY URL provided. Do not skip or filter any URLs
- Copy each "url" exactly as given
- Return ONLY valid JSON, no markdown code fences"""
