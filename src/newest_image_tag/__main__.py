"""Allow ``python -m newest_image_tag``."""

from newest_image_tag.cli.main import main

main()
