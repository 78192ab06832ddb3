"""
Entry Point Script (Bootstrap)
==============================
Development runner that starts the viewer without installing the package.

Why is this file needed?
------------------------
1. It is located outside the 'src' package to act as a convenient runner.
2. It puts 'src' on 'sys.path' so 'import viewer3d' resolves from a checkout.

Usage:
    $ python run.py
"""
import sys
import os

current_dir: str = os.path.dirname(os.path.abspath(__file__))
src_path: str = os.path.join(current_dir, 'src')
sys.path.insert(0, src_path)

from viewer3d.main import main

if __name__ == "__main__":
    main()
