from django.contrib import admin
from .models import (
    Amenity,
    BasicAmenity,
    Booking,
    DiscountConfig,
    Exhibition,
    ExhibitionStallRate,
    InvoiceSequence,
    Layout,
    StallType,
    TaxConfig,
)


class ExhibitionStallRateInline(admin.TabularInline):
    model = ExhibitionStallRate
    extra = 0


class TaxConfigInline(admin.TabularInline):
    model = TaxConfig
    extra = 0


class DiscountConfigInline(admin.TabularInline):
    model = DiscountConfig
    extra = 0


class AmenityInline(admin.TabularInline):
    model = Amenity
    extra = 0


class BasicAmenityInline(admin.TabularInline):
    model = BasicAmenity
    extra = 0


@admin.register(Exhibition)
class ExhibitionAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'venue', 'status', 'is_active', 'start_date', 'end_date']
    list_filter = ['status', 'is_active']
    search_fields = ['name', 'slug', 'venue']
    inlines = [
        ExhibitionStallRateInline,
        TaxConfigInline,
        DiscountConfigInline,
        AmenityInline,
        BasicAmenityInline,
    ]


@admin.register(StallType)
class StallTypeAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'default_rate', 'rate_type', 'is_active']
    list_filter = ['category', 'rate_type', 'is_active']


@admin.register(Layout)
class LayoutAdmin(admin.ModelAdmin):
    list_display = ['name', 'exhibition', 'version', 'is_active', 'updated_at']
    readonly_fields = ['version']


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ['invoice_number', 'company_name', 'exhibition', 'status', 'payment_status', 'amount', 'created_at']
    list_filter = ['status', 'payment_status', 'booking_source']
    search_fields = ['invoice_number', 'company_name', 'customer_name', 'customer_email']


@admin.register(InvoiceSequence)
class InvoiceSequenceAdmin(admin.ModelAdmin):
    list_display = ['exhibition', 'prefix', 'year', 'last_value']
