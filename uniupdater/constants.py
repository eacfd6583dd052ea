from pathlib import Path

CONFIG_DIR = Path.home() / '.config' / 'uniupdater'
CONFIG_FILE = CONFIG_DIR / 'config.yaml'

ROOT_MOUNT = Path('/')
BOOT_MOUNT = Path('/boot')
USER_CACHE_NAME = '.cache'

GIB = 1024 ** 3
