#!/usr/bin/env python3
"""Main entry point for the JobFlow tracker API."""

import sys
import os

# Add src to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__)))

from src.api.server import run_server

if __name__ == '__main__':
    print("=" * 60)
    print("JobFlow Tracker - Starting Server")
    print("=" * 60)
    print("\nEndpoints:")
    print("  GET    /vacancies/search                      - Search hh.ru")
    print("  GET    /vacancies/<id>                        - Vacancy (cached 7 days)")
    print("  GET    /users/me/vacancies                    - Saved vacancies")
    print("  POST   /users/me/vacancies/<id>               - Save vacancy")
    print("  DELETE /users/me/vacancies/<id>               - Remove saved vacancy")
    print("  PUT    /users/me/vacancies/<id>/progress      - Append status")
    print("  GET    /health                                - Health check")
    print("\n" + "=" * 60)

    run_server()
