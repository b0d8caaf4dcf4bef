"""Companies, questionnaire responses and background memo generation"""
