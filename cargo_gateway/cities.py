"""Turkish province plate codes, shared by every carrier's city lookups."""
from types import MappingProxyType

_ASCII_FOLD = str.maketrans({
    "İ": "I", "ı": "I", "Ş": "S", "ş": "S", "Ğ": "G", "ğ": "G",
    "Ü": "U", "ü": "U", "Ö": "O", "ö": "O", "Ç": "C", "ç": "C",
})


def ascii_fold(value) -> str:
    return (value or "").translate(_ASCII_FOLD)


def normalize_city(name) -> str:
    """'İstanbul ' -> 'ISTANBUL'. Carrier payloads mix dotted and dotless I freely."""
    return ascii_fold(name).strip().upper()


CITY_CODES = MappingProxyType({
    "ADANA": "01", "ADIYAMAN": "02", "AFYONKARAHISAR": "03", "AGRI": "04", "AMASYA": "05",
    "ANKARA": "06", "ANTALYA": "07", "ARTVIN": "08", "AYDIN": "09", "BALIKESIR": "10",
    "BILECIK": "11", "BINGOL": "12", "BITLIS": "13", "BOLU": "14", "BURDUR": "15",
    "BURSA": "16", "CANAKKALE": "17", "CANKIRI": "18", "CORUM": "19", "DENIZLI": "20",
    "DIYARBAKIR": "21", "EDIRNE": "22", "ELAZIG": "23", "ERZINCAN": "24", "ERZURUM": "25",
    "ESKISEHIR": "26", "GAZIANTEP": "27", "GIRESUN": "28", "GUMUSHANE": "29", "HAKKARI": "30",
    "HATAY": "31", "ISPARTA": "32", "MERSIN": "33", "ISTANBUL": "34", "IZMIR": "35",
    "KARS": "36", "KASTAMONU": "37", "KAYSERI": "38", "KIRKLARELI": "39", "KIRSEHIR": "40",
    "KOCAELI": "41", "KONYA": "42", "KUTAHYA": "43", "MALATYA": "44", "MANISA": "45",
    "KAHRAMANMARAS": "46", "MARDIN": "47", "MUGLA": "48", "MUS": "49", "NEVSEHIR": "50",
    "NIGDE": "51", "ORDU": "52", "RIZE": "53", "SAKARYA": "54", "SAMSUN": "55",
    "SIIRT": "56", "SINOP": "57", "SIVAS": "58", "TEKIRDAG": "59", "TOKAT": "60",
    "TRABZON": "61", "TUNCELI": "62", "SANLIURFA": "63", "USAK": "64", "VAN": "65",
    "YOZGAT": "66", "ZONGULDAK": "67", "AKSARAY": "68", "BAYBURT": "69", "KARAMAN": "70",
    "KIRIKKALE": "71", "BATMAN": "72", "SIRNAK": "73", "BARTIN": "74", "ARDAHAN": "75",
    "IGDIR": "76", "YALOVA": "77", "KARABUK": "78", "KILIS": "79", "OSMANIYE": "80",
    "DUZCE": "81",
})


def cities_up_to(plate: int) -> dict[str, str]:
    """Subset of provinces a carrier publishes, keyed by name (plates 01..plate)."""
    return {name: code for name, code in CITY_CODES.items() if int(code) <= plate}
