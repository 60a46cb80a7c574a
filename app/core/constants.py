PRODUCT_FIELDS = ("name", "unit", "category", "brand", "stock", "status", "image")
OPTIONAL_TEXT_FIELDS = ("unit", "category", "brand", "status", "image")

EXPORT_FIELDS = ("id",) + PRODUCT_FIELDS
EXPORT_CSV_FILENAME = "products.csv"
EXPORT_XLSX_FILENAME = "products.xlsx"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

IMPORT_UPLOAD_FIELD = "csvFile"
WORKBOOK_SUFFIXES = (".xlsx",)

ROOT_BANNER = "Product Inventory Management API"
