from django.urls import path

from .views import (
    ExportAPIView,
    ImportPreviewAPIView,
    ImportTradesAPIView,
    StatsAPIView,
    TemplateImportAPIView,
    TradeDetailAPIView,
    TradesListAPIView,
)

urlpatterns = [
    path("import/preview/", ImportPreviewAPIView.as_view(), name="api-import-preview"),
    path("import/", ImportTradesAPIView.as_view(), name="api-import"),
    path("import/template/", TemplateImportAPIView.as_view(), name="api-import-template"),
    path("trades/", TradesListAPIView.as_view(), name="api-trades"),
    path("trades/<int:pk>/", TradeDetailAPIView.as_view(), name="api-trade-detail"),
    path("stats/", StatsAPIView.as_view(), name="api-stats"),
    path("export/", ExportAPIView.as_view(), name="api-export"),
]
