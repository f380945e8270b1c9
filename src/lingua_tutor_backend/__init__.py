'''
LinguaTutor backend: lesson booking, settlement and payouts for the
language-tutoring marketplace.
'''
