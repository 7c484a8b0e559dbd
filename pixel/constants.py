MAIN_BRANCH = "master"
LATEST_RELEASE_BRANCH = "latest-release"

MEDIAWIKI_REMOTE = "https://gerrit.wikimedia.org/r/mediawiki/core"
CODEX_REMOTE = "https://gerrit.wikimedia.org/r/design/codex"
CODEX_REPO = "design/codex"
RELEASE_BRANCH_PATTERN = "wmf/[0-9]*"
CODEX_TAG_PATTERN = "v[0-9]*"

COMPOSE_FILE = "docker-compose.yml"
MEDIAWIKI_SERVICE = "mediawiki"
DATABASE_SERVICE = "database"
REGRESSION_SERVICE = "visual-regression"
SETUP_SCRIPT = "/src/main.js"
SEED_DB_SCRIPT = "/docker-entrypoint-initdb.d/seedDb.sh"
PURGE_PARSER_CACHE_SCRIPT = "/src/purgeParserCache.sh"
BASE_IMAGE_SCRIPT = "./build-base-regression-image.sh"

VISUAL_TOOL = "backstop"
A11Y_TOOL = "a11y"

CONTEXT_FILENAME = "context.json"
REPORT_ROOT = "report"
REPORT_INDEX = "index.html"
REPORT_MARKER = '<div id="root">'
