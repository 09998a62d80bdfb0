from django.contrib import admin

from partners.models import Agent, CommissionTier, Employee, Misp, Posp


@admin.register(Employee)
class EmployeeAdmin(admin.ModelAdmin):
    list_display = ("name", "employee_code", "reporting_manager", "organization", "is_active")
    search_fields = ("name", "employee_code")


@admin.register(CommissionTier)
class CommissionTierAdmin(admin.ModelAdmin):
    list_display = ("name", "base_percentage", "organization", "is_active")


@admin.register(Agent, Misp)
class TieredChannelPartnerAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "code",
        "base_percentage",
        "override_percentage",
        "commission_tier",
        "reporting_employee",
        "organization",
    )
    search_fields = ("name", "code")


@admin.register(Posp)
class PospAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "organization", "is_active")
    search_fields = ("name", "code")
