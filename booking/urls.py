from django.urls import path
from . import views

app_name = 'booking'

urlpatterns = [
	path('doctors/<int:doctor_id>/slots/', views.free_slots, name='free_slots'),
	path('appointments/', views.book_appointment, name='book_appointment'),
	path('appointments/mine/', views.my_appointments, name='my_appointments'),
	path('appointments/<int:appointment_id>/cancel/', views.cancel_appointment, name='cancel_appointment'),
	path('appointments/<int:appointment_id>/reschedule/', views.reschedule_appointment, name='reschedule_appointment'),
	path('payments/confirm/', views.confirm_payment, name='confirm_payment'),
]
