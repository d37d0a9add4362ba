"""
Supported target languages.
"""
from dataclasses import dataclass, asdict
from typing import Optional, List, Dict


@dataclass(frozen=True)
class Language:
    code: str
    name: str
    flag: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


SUPPORTED_LANGUAGES: List[Language] = [
    Language("en", "English", "🇺🇸"),
    Language("zh", "Chinese", "🇨🇳"),
    Language("fr", "French", "🇫🇷"),
    Language("es", "Spanish", "🇪🇸"),
    Language("de", "German", "🇩🇪"),
    Language("it", "Italian", "🇮🇹"),
    Language("pt", "Portuguese", "🇵🇹"),
    Language("ru", "Russian", "🇷🇺"),
    Language("ja", "Japanese", "🇯🇵"),
    Language("ko", "Korean", "🇰🇷"),
    Language("nl", "Dutch", "🇳🇱"),
    Language("pl", "Polish", "🇵🇱"),
    Language("tr", "Turkish", "🇹🇷"),
    Language("ar", "Arabic", "🇸🇦"),
    Language("hi", "Hindi", "🇮🇳"),
    Language("th", "Thai", "🇹🇭"),
    Language("vi", "Vietnamese", "🇻🇳"),
    Language("sv", "Swedish", "🇸🇪"),
    Language("no", "Norwegian", "🇳🇴"),
    Language("da", "Danish", "🇩🇰"),
    Language("fi", "Finnish", "🇫🇮"),
    Language("cs", "Czech", "🇨🇿"),
    Language("hu", "Hungarian", "🇭🇺"),
    Language("ro", "Romanian", "🇷🇴"),
    Language("bg", "Bulgarian", "🇧🇬"),
    Language("hr", "Croatian", "🇭🇷"),
    Language("sk", "Slovak", "🇸🇰"),
    Language("sl", "Slovenian", "🇸🇮"),
    Language("uk", "Ukrainian", "🇺🇦"),
    Language("he", "Hebrew", "🇮🇱"),
]

_BY_CODE = {language.code: language for language in SUPPORTED_LANGUAGES}


def get_language_by_code(code: str) -> Optional[Language]:
    return _BY_CODE.get(code)
