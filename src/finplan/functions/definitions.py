"""Prompts and tool schemas sent to the LLM gateway.

Tools use the neutral ``{"name", "description", "input_schema"}`` format;
the gateway client converts them to OpenAI function tools.
"""

from typing import Any

from finplan.config.categories_loader import BALANCE_IMPACTS, CategoryCatalog

# === Transaction categorization ===

CATEGORIZE_SYSTEM_PROMPT = """Sen bir Türk şirketi için uzman finansal işlem kategorileme asistanısın.

KRİTİK KURALLAR:
1. HER İŞLEM MUTLAKA KATEGORİLENMELİ - Atlama yok
2. Şüpheli işlemlerde en yakın kategoriyi seç + confidence düşür
3. Tool calling ile categorize_transactions fonksiyonunu kullan
4. Batch'teki TÜM işlemleri tek seferde kategorile

KATEGORİ TÜRLERİ VE BİLANÇO ETKİSİ:
| TÜR        | affects_pnl | balance_impact      |
|------------|-------------|---------------------|
| INCOME     | true        | equity_increase     |
| EXPENSE    | true        | equity_decrease     |
| PARTNER    | false       | asset/liability     |
| INVESTMENT | false       | asset_increase      |
| FINANCING  | false       | liability_increase  |
| EXCLUDED   | false       | none                |

{category_table}

KARAR AĞACI:
1. TUTAR POZİTİF: müşteri tahsilatı → INCOME, ortaktan para → ORTAK_IN,
   kredi kullanımı → KREDI_IN, faiz geliri → FAIZ_IN, belirsiz → DIGER_IN
2. TUTAR NEGATİF: fatura/hizmet → ilgili EXPENSE, ortağa ödeme → ORTAK_OUT,
   araç/ekipman (>50K) → ARAC/EKIPMAN, kredi taksiti → KREDI_OUT,
   iç transfer → IC_TRANSFER, belirsiz → DIGER_OUT
3. ÖZEL DURUMLAR: VİRMAN + aynı tutar giriş/çıkış → IC_TRANSFER,
   ATM + ortak ismi → ORTAK_OUT, KOMİSYON/MASRAF (düşük tutar) → BANKA

CONFIDENCE: 1.0 kesin eşleşme, 0.8 yüksek güven, 0.6 orta güven,
0.4 ve altı manuel kontrol gerekir.

COUNTERPARTY: EFT/HAVALE açıklamalarından karşı taraf ismini çıkar
("EFT GÖNDERİM-AHMET YILMAZ" → "AHMET YILMAZ"). Bulunamazsa null.

Batch'teki TÜM işlemleri kategorile!"""


def render_category_table(catalog: CategoryCatalog) -> str:
    """One line per category type listing its codes and keywords."""
    lines = []
    for category_type in catalog.types:
        lines.append(f"{category_type}:")
        for spec in catalog.by_type(category_type):
            keywords = ", ".join(spec.keywords) or "(diğer)"
            lines.append(f"- {spec.code} [{spec.balance_impact}]: {keywords}")
    return "\n".join(lines)


def categorize_system_prompt(catalog: CategoryCatalog) -> str:
    return CATEGORIZE_SYSTEM_PROMPT.replace("{category_table}", render_category_table(catalog))


def categorize_tool(catalog: CategoryCatalog) -> dict[str, Any]:
    """Tool contract for batch categorization; enums come from the catalog."""
    return {
        "name": "categorize_transactions",
        "description": "Banka işlemlerini kategorile ve bilanço etkisini belirle",
        "input_schema": {
            "type": "object",
            "properties": {
                "results": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "index": {
                                "type": "number",
                                "description": "İşlemin listedeki sırası",
                            },
                            "categoryCode": {
                                "type": "string",
                                "description": "Kategori kodu",
                                "enum": catalog.codes,
                            },
                            "categoryType": {
                                "type": "string",
                                "description": "Kategori türü",
                                "enum": catalog.types,
                            },
                            "confidence": {
                                "type": "number",
                                "description": "Güven skoru (0.0 - 1.0)",
                                "minimum": 0,
                                "maximum": 1,
                            },
                            "reasoning": {
                                "type": "string",
                                "description": "Kategori seçim gerekçesi (max 50 karakter)",
                                "maxLength": 50,
                            },
                            "counterparty": {
                                "type": ["string", "null"],
                                "description": "Karşı taraf ismi (tespit edildiyse)",
                            },
                            "affects_pnl": {
                                "type": "boolean",
                                "description": "Kar/Zarar hesabını etkiler mi?",
                            },
                            "balance_impact": {
                                "type": "string",
                                "description": "Bilanço etkisi türü",
                                "enum": list(BALANCE_IMPACTS),
                            },
                        },
                        "required": [
                            "index",
                            "categoryCode",
                            "categoryType",
                            "confidence",
                            "reasoning",
                            "affects_pnl",
                            "balance_impact",
                        ],
                        "additionalProperties": False,
                    },
                }
            },
            "required": ["results"],
            "additionalProperties": False,
        },
    }


# === Bank statement parsing ===

STATEMENT_SYSTEM_PROMPT = """Sen bir Türk bankası hesap ekstresi analiz uzmanısın. Excel dosyasından çıkarılan ham metin verisini analiz edip, TÜM işlem satırlarını JSON formatında döndüreceksin.

EN ÖNEMLİ KURAL:
1. HİÇBİR İŞLEM SATIRI ES GEÇİLMEYECEK
2. Para hareketi içeren HER SATIR çıktıda olmalı
3. Şüpheli satırları da dahil et, "needs_review": true işaretle
4. [ROW X] formatındaki HER satırı işle, row_number alanına X değerini yaz

ÇİFT SATIRLI İŞLEMLER: ana satır ile açıklama devamını tek işlem olarak birleştir,
row_number olarak para hareketi olan satırın numarasını kullan.

ÇIKTI FORMATI:
{
  "transactions": [
    {
      "row_number": number,
      "date": "YYYY-MM-DD",
      "original_date": "string",
      "description": "string",
      "amount": number,
      "original_amount": "string",
      "balance": number | null,
      "reference": "string | null",
      "counterparty": "string | null",
      "transaction_type": "string",
      "channel": "string | null",
      "needs_review": boolean,
      "confidence": number
    }
  ],
  "summary": {
    "total_rows_in_file": number,
    "header_rows_skipped": number,
    "footer_rows_skipped": number,
    "empty_rows_skipped": number,
    "transaction_count": number,
    "needs_review_count": number,
    "total_income": number,
    "total_expense": number,
    "date_range": { "start": "YYYY-MM-DD", "end": "YYYY-MM-DD" },
    "skipped_rows": [{ "row_number": number, "reason": "string" }]
  },
  "bank_info": {
    "detected_bank": "string | null",
    "account_number": "string | null",
    "iban": "string | null",
    "currency": "TRY"
  }
}

TÜRK BANKASI FORMATI: binlik ayracı nokta (1.234.567), ondalık ayracı virgül (1.234,56).

TUTAR KORUMA: Excel'deki sayısal değerin İŞARETİNİ koru. Açıklamadaki "GİDEN",
"GELEN" gibi kelimelere göre işaret değiştirme. Borç/Alacak ayrı sütunlarda ise
Borç sütunu NEGATİF, Alacak sütunu POZİTİF olur.

İŞLEM TÜRLERİ: EFT, HAVALE, FAST, POS, ATM, VIRMAN, FAIZ, KOMISYON, MAAS, KIRA, FATURA, VERGI, KREDI, OTHER

ATLAMA: başlıklar, sütun isimleri, toplam satırları ve boş satırlar atlanır;
atlanan satırlar "skipped_rows" içinde listelenir.

DOĞRULAMA: total_income tüm pozitif tutarların toplamı, total_expense tüm negatif
tutarların mutlak değer toplamıdır.

SADECE JSON döndür, markdown code block kullanma, Türkçe karakterleri koru."""


def statement_user_prompt(file_type: str, file_name: str, file_content: str) -> str:
    return f"Dosya tipi: {file_type}\nDosya adı: {file_name}\n\nİçerik:\n{file_content}"


# === Receipt OCR ===

RECEIPT_PROMPT = """Sen Türk fiş/fatura OCR uzmanısın.

GÖREV: Verilen fiş/fatura görüntüsünden bilgileri çıkar.

ÇIKARILACAK ALANLAR:
- vendorName: Mağaza/Firma adı
- vendorTaxNo: Vergi numarası (VKN/TCKN, 10-11 hane)
- receiptDate: Tarih (DD.MM.YYYY formatında)
- receiptNo: Fiş/Fatura numarası
- totalAmount: Toplam tutar (sayı olarak)
- taxAmount: KDV tutarı (sayı olarak)
- currency: Para birimi (varsayılan TRY)

İPUÇLARI:
- "TOPLAM", "GENEL TOPLAM", "ÖDENECEK" → totalAmount
- "KDV", "VERGİ" → taxAmount

ÇIKTI FORMAT:
Sadece JSON object döndür:
{"vendorName":"X","vendorTaxNo":"Y","receiptDate":"01.01.2025","receiptNo":"Z","totalAmount":123.45,"taxAmount":20.57,"currency":"TRY","confidence":0.9}

Okunamayan alanlar için null kullan."""


# === Plan and actual parsing ===

PLAN_SYSTEM_PROMPT = """Sen bir Türkçe planlama asistanısın. Kullanıcının sesli veya yazılı komutlarını JSON formatında plan öğelerine dönüştürüyorsun.

KURAL:
- Tarih/saat belirtilmemişse bugün ve makul bir saat varsay
- Süre belirtilmemişse varsayılan 60 dakika kullan
- Türkçe komutları anla: "yarın", "bugün", "pazartesi", "saat 10'da", "öğleden sonra" vb.
- "Az önce", "şu an" gibi ifadeler bu fonksiyon için geçerli DEĞİL

JSON FORMATI:
{
  "operations": [
    {
      "op": "add",
      "title": "string",
      "startAt": "ISO8601 datetime",
      "endAt": "ISO8601 datetime",
      "type": "task|event|habit",
      "priority": "low|med|high",
      "tags": ["string"],
      "notes": "string veya null"
    }
  ],
  "warnings": ["uyarı mesajları"],
  "clarifyingQuestions": ["netleştirme soruları"]
}

ÖNEMLİ: Yalnızca geçerli JSON döndür."""

ACTUAL_SYSTEM_PROMPT = """Sen bir Türkçe zaman takip asistanısın. Kullanıcının "şu an yaptığım" veya "az önce yaptığım" aktivitelerini JSON formatına dönüştürüyorsun.

ZAMAN TAHMİN KURALLARI (BUGÜN İÇİN):
- "şu an" / "şimdi" → şu anki saat başlangıç, varsayılan 30 dk süre
- "az önce" → şu an - 15 dakika başlangıç
- "biraz önce" → şu an - 10 dakika başlangıç
- "X dakika önce" / "X saat önce" → şu an eksi o süre
- "X saat sürdü" → süreyi buna göre ayarla
- Net saat verilirse (örn: "12:10-12:45") onu kullan

GEÇMİŞ TARİH İÇİN:
- Hedef tarih bugünden farklıysa o günün makul bir saatini tahmin et (örn: 14:00-14:30)
- TÜM ZAMANLARI HEDEF TARİH İÇİN OLUŞTUR

JSON FORMATI:
{
  "operations": [
    {
      "op": "addActual",
      "title": "string",
      "startAt": "ISO8601 datetime",
      "endAt": "ISO8601 datetime",
      "tags": ["string"],
      "notes": "string veya null"
    }
  ],
  "warnings": ["uyarı mesajları"],
  "clarifyingQuestions": ["netleştirme soruları"]
}

ÖNEMLİ: Yalnızca geçerli JSON döndür."""


def plan_user_prompt(text: str, date: str | None, now: str | None, timezone: str | None) -> str:
    return (
        f"Bugünün tarihi: {date}\n"
        f"Şu anki saat: {now}\n"
        f"Timezone: {timezone}\n\n"
        f'Kullanıcı komutu: "{text}"\n\n'
        "Bu komutu analiz et ve plan öğesi olarak JSON formatında döndür."
    )


def actual_user_prompt_today(
    text: str, date: str | None, local_time: str, timezone: str | None, offset: str
) -> str:
    time_part = local_time.split("T")[1][:5] if "T" in local_time else ""
    return (
        f"Bugünün tarihi (kullanıcının yerel saatine göre): {date}\n"
        f"Kullanıcının şu anki yerel saati: {local_time}\n"
        f"Timezone: {timezone} (UTC{offset})\n\n"
        "ÖNEMLİ:\n"
        f"- Kullanıcı yerel saat söylüyor ({timezone}).\n"
        f"- TÜM SAATLERİ {timezone} timezone'unda döndür!\n"
        f"- Format: {date}T14:00:00{offset}\n"
        f'- "şu an" = {time_part or "şimdiki saat"}\n\n'
        f'Kullanıcı komutu: "{text}"\n\n'
        "Bu komutu analiz et ve gerçekleşen aktivite olarak JSON formatında döndür."
    )


def actual_user_prompt_past(
    text: str, date: str | None, user_today: str, timezone: str | None, offset: str
) -> str:
    return (
        f"Hedef tarih: {date} (GEÇMİŞ BİR GÜN - Kullanıcının bugünü: {user_today})\n"
        f"Timezone: {timezone} (UTC{offset})\n\n"
        f'Kullanıcı komutu: "{text}"\n\n'
        "Bu GEÇMİŞ GÜN için aktivite kaydı.\n"
        '- "Şu an" veya "az önce" ifadeleri varsa, o günün makul bir saatini tahmin et '
        "(örn: 14:00-14:30)\n"
        "- Net saat verilmişse (örn: \"sabah 9'da\") o saati kullan\n"
        f"- TÜM ZAMANLARI {date} TARİHİ İÇİN OLUŞTUR!\n"
        f"- TÜM SAATLERİ {timezone} timezone'unda döndür!\n"
        f"- Format: {date}T14:00:00{offset}"
    )
