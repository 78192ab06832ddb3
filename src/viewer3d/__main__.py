"""Allows 'python -m viewer3d'."""
from viewer3d.main import main

if __name__ == "__main__":
    main()
