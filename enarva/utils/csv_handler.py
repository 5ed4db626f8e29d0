"""
CSV处理模块 - 活动日志导出
"""

from typing import Dict, List

import pandas as pd

# 导出列及其表头
ACTIVITY_COLUMNS: Dict[str, str] = {
    'createdAt': 'Date',
    'type': 'Type',
    'title': 'Title',
    'description': 'Description',
    'userId': 'User',
    'leadId': 'Lead',
    'missionId': 'Mission',
}


class CSVHandler:
    """活动记录与CSV之间的转换"""

    @staticmethod
    def activities_to_frame(activities: List[Dict]) -> pd.DataFrame:
        """
        将活动字典列表转换为导出用的DataFrame

        缺失的列补空，ID列保持整数（可空）类型。
        """
        df = pd.DataFrame(activities, columns=list(ACTIVITY_COLUMNS))
        for col in ('userId', 'leadId', 'missionId'):
            df[col] = df[col].astype('Int64')
        df['createdAt'] = pd.to_datetime(df['createdAt'], format='ISO8601').dt.strftime('%Y-%m-%d %H:%M:%S')
        return df.rename(columns=ACTIVITY_COLUMNS)

    @staticmethod
    def activities_to_csv(activities: List[Dict]) -> str:
        """返回CSV文本（UTF-8，无索引列）"""
        return CSVHandler.activities_to_frame(activities).to_csv(index=False)
