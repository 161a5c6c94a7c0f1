VERSION = "0.1.0"

LOGO = r"""
       _
 _ __ (_)_ __   ___  __ _  ___ _ __
| '_ \| | '_ \ / _ \/ _` |/ _ \ '_ \
| |_) | | |_) |  __/ (_| |  __/ | | |
| .__/|_| .__/ \___|\__, |\___|_| |_|
|_|     |_|         |___/
"""
