from django.urls import path

from . import views

urlpatterns = [
    path("", views.create_client_view, name="client_create"),
    path("import/preview/", views.preview_import_view, name="client_import_preview"),
    path("export/", views.export_view, name="client_export"),
    path("stats/", views.portfolio_stats_view, name="client_portfolio_stats"),
    path("<str:ref>/", views.client_detail_view, name="client_detail"),
    path("<str:ref>/ref/", views.update_ref_view, name="client_update_ref"),
    path("<str:ref>/portfolio/", views.move_portfolio_view, name="client_move_portfolio"),
]
