"""Allow ``python -m redis_mutex``."""

from redis_mutex.cli.main import main

if __name__ == "__main__":
    main()
