from django.urls import path
from . import views

app_name = 'dashboard'

urlpatterns = [
    path('appointments/', views.appointments, name='appointments'),
    path('appointments/today/', views.todays_list, name='todays_appointments'),
    path('appointments/<int:appointment_id>/confirm/', views.confirm_appointment, name='confirm_appointment'),
    path('appointments/<int:appointment_id>/complete/', views.complete_appointment, name='complete_appointment'),
    path('appointments/<int:appointment_id>/cancel/', views.cancel_appointment, name='cancel_appointment'),
    path('patients/', views.patients, name='patients'),
    path('availability/', views.availability_days, name='availability'),
    path('availability/slots/<int:slot_id>/delete/', views.delete_slot, name='delete_slot'),
    path('schedule/', views.schedule, name='schedule'),
]
