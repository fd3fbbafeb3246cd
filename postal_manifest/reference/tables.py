"""
Built-in PIN reference tables.

The exact table is deliberately small; anything missing falls back to the
first-digit region check.
"""

# (pincode, region, state, district)
EXACT_ENTRIES = [
    ('500001', 'South', 'Telangana', 'Hyderabad'),
    ('560001', 'South', 'Karnataka', 'Bangalore'),
    ('600001', 'South', 'Tamil Nadu', 'Chennai'),
    ('682001', 'South', 'Kerala', 'Ernakulam'),
    ('110001', 'North', 'Delhi', 'New Delhi'),
    ('110002', 'North', 'Delhi', 'New Delhi'),
    ('110003', 'North', 'Delhi', 'New Delhi'),
    ('400001', 'West', 'Maharashtra', 'Mumbai'),
    ('700001', 'East', 'West Bengal', 'Kolkata'),
    ('302001', 'North', 'Rajasthan', 'Jaipur'),
]

# First PIN digit -> state / postal authority names found in addresses
REGION_FALLBACK = {
    '1': ['Delhi', 'Haryana', 'Punjab', 'Himachal', 'Jammu', 'Kashmir', 'Chandigarh'],
    '2': ['Uttar Pradesh', 'Uttarakhand'],
    '3': ['Rajasthan', 'Gujarat', 'Daman', 'Diu', 'Dadra'],
    '4': ['Maharashtra', 'Goa', 'Madhya Pradesh', 'Chhattisgarh'],
    '5': ['Andhra Pradesh', 'Telangana', 'Karnataka'],
    '6': ['Tamil Nadu', 'Kerala', 'Puducherry', 'Lakshadweep'],
    '7': ['West Bengal', 'Odisha', 'Assam', 'Sikkim', 'Arunachal', 'Nagaland',
          'Manipur', 'Mizoram', 'Tripura', 'Meghalaya'],
    '8': ['Bihar', 'Jharkhand'],
    '9': ['Army Postal Service', 'Field Post Office'],
}

# District -> alternative spellings accepted as a district match
DISTRICT_ALIASES = {
    'Bangalore': ['Bengaluru'],
}
