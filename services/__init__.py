from services.catalog import CategoryService, ProductService
from services.content import TvCategoryService, TvContentService
from services.events import FantasyService, PaymentService, RegistrationService, ShoeService, TeamService
from services.notifications import NotificationService
from services.orders import OrderService
from services.promotions import LogisticsService, VoucherService
from services.reports import SalesReportService, StatsService
from services.uploads import ImageStore

__all__ = [
    "CategoryService",
    "FantasyService",
    "ImageStore",
    "LogisticsService",
    "NotificationService",
    "OrderService",
    "PaymentService",
    "ProductService",
    "RegistrationService",
    "SalesReportService",
    "ShoeService",
    "StatsService",
    "TeamService",
    "TvCategoryService",
    "TvContentService",
    "VoucherService",
]
