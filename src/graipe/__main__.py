"""
Run with: python -m graipe
"""
import sys

from graipe.main import main

sys.exit(main())
