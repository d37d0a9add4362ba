"""
Prompts for config-file translation.
"""
import os
from typing import Optional

# File extension -> syntax name used in prompts
FILE_KINDS = {
    ".yml": "YAML",
    ".yaml": "YAML",
    ".json": "JSON",
    ".properties": "Java properties",
    ".conf": "configuration",
    ".config": "configuration",
    ".lang": "language (.lang)",
}

GENERIC_FILE_KIND = "configuration"

TRANSLATION_SYSTEM_PROMPT = """You are a professional translator specializing in game server and plugin configuration files.

IMPORTANT RULES:
1. ONLY translate human-readable text content (messages, descriptions, item names, lore, etc.)
2. PRESERVE all MiniMessage color tags exactly as they are (e.g., <red>, <green>, <gradient:blue:purple>, <#FF0000>, </bold>)
3. PRESERVE all legacy color codes exactly as they are (e.g., &a, &l, §c, &#FF0000)
4. PRESERVE all placeholders exactly as they are (e.g., %player%, %time%, %balance%, {count}, {0})
5. PRESERVE all structure, keys, indentation, quoting, punctuation and formatting
6. DO NOT translate configuration keys, file paths, commands, permissions, technical identifiers, or boolean/numeric values
7. PRESERVE all comments and their formatting exactly as they are

Return ONLY the translated content with the same exact structure and formatting, without explanations or code fences."""


def get_file_kind(file_name: Optional[str]) -> str:
    """Syntax name for a file, from its extension."""
    if not file_name:
        return GENERIC_FILE_KIND
    extension = os.path.splitext(file_name)[1].lower()
    return FILE_KINDS.get(extension, GENERIC_FILE_KIND)


def get_translation_prompt(
    text: str,
    target_language: str,
    target_code: str,
    file_kind: str = GENERIC_FILE_KIND,
    chunk_index: int = 0,
    total_chunks: int = 1
) -> str:
    """Generate the user prompt for one chunk (or a whole document)."""
    if total_chunks > 1:
        position = (
            f"This is part {chunk_index + 1} of {total_chunks} of a larger {file_kind} file. "
            f"Translate only this part, and keep terminology consistent with the rest of the file.\n\n"
        )
    else:
        position = ""

    return f"""{position}Translate the following {file_kind} file to {target_language} ({target_code}):

```
{text}
```"""
