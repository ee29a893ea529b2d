"""
Stroke Risk Analytics
=====================

A machine learning pipeline predicting stroke occurrence from patient records.

Modules:
    - data_loader: CSV ingestion, schema checks and configuration
    - cleaning: Type casting, label checks and grouped bmi imputation
    - eda: Exploratory Data Analysis
    - features: Bucketed categories and composite risk score
    - preprocessing: Stratified train/test split and feature encoding
    - model: Random forest training with oversampling and CV tuning
    - evaluation: Confusion matrix, ROC/AUC and Youden threshold
    - prediction: Scoring new patient records
"""

__version__ = "1.0.0"
__author__ = "Predictive Analytics Team"
