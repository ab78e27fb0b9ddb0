# src/flatscribe/config.py

CONFIG_FILE_NAME = ".flatscribe.yaml"
GITIGNORE_FILE_NAME = ".gitignore"

DEFAULT_OUTPUT_FILE = "PROJECT_STRUCTURE.md"
DEFAULT_DEBOUNCE_MS = 1500
DEFAULT_MAX_FILE_SIZE_BYTES = 0  # 0 = unlimited
DEFAULT_READ_WORKERS = 16

DEFAULT_INCLUDE_PATTERNS: list = []

DEFAULT_EXCLUDE_PATTERNS = [
    # General
    "**/node_modules/**",
    "**/.git/**",
    "**/.vscode/**",
    "**/.idea/**",
    "**/dist/**",
    "**/build/**",
    "**/coverage/**",
    "**/__pycache__/**",
    "**/.venv/**",
    "**/venv/**",
    # Binaries & media
    "**/*.png",
    "**/*.jpg",
    "**/*.jpeg",
    "**/*.gif",
    "**/*.svg",
    "**/*.ico",
    "**/*.webp",
    "**/*.pdf",
    "**/*.zip",
    "**/*.tar.gz",
    "**/*.rar",
    "**/*.7z",
    "**/*.woff",
    "**/*.woff2",
    "**/*.eot",
    "**/*.ttf",
    "**/*.otf",
    "**/*.mp3",
    "**/*.mp4",
    "**/*.webm",
    "**/*.avi",
    "**/*.mov",
    "**/*.pyc",
    # Lock files
    "**/package-lock.json",
    "**/pnpm-lock.yaml",
    "**/yarn.lock",
    "**/composer.lock",
    "**/poetry.lock",
    # Logs
    "**/*.log",
    "**/.DS_Store",
]

DEFAULT_LANGUAGE_MAP = {
    ".js": "javascript",
    ".jsx": "jsx",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".json": "json",
    ".md": "markdown",
    ".html": "html",
    ".css": "css",
    ".scss": "scss",
    ".less": "less",
    ".py": "python",
    ".java": "java",
    ".go": "go",
    ".rs": "rust",
    ".rb": "ruby",
    ".php": "php",
    ".cs": "csharp",
    ".sh": "shell",
    ".yml": "yaml",
    ".yaml": "yaml",
    ".toml": "toml",
    ".xml": "xml",
    ".sql": "sql",
    ".graphql": "graphql",
    ".dockerfile": "dockerfile",
    ".gitignore": "gitignore",
}

FALLBACK_LANGUAGE = "plaintext"
