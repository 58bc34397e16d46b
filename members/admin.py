from django.contrib import admin

from .models import Member


@admin.register(Member)
class MemberAdmin(admin.ModelAdmin):
    list_display = ('member_id', 'name', 'email', 'category', 'status', 'created_at')
    list_filter = ('status', 'category')
    search_fields = ('member_id', 'name', 'email')
    readonly_fields = ('created_at', 'updated_at')
