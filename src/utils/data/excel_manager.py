from io import BytesIO
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

# Lines written one per row above a table; None leaves the row blank.
SheetBlock = Tuple[Sequence[Optional[str]], pd.DataFrame]


class ExcelManager:
    """
    Excel workbook writing on top of pandas and openpyxl.
    """

    @staticmethod
    def workbook_bytes(sheets: Dict[str, List[SheetBlock]]) -> bytes:
        """
        Builds an in-memory workbook. Each sheet holds blocks stacked vertically: the block's
        title lines, then the table with its header row, then one blank row before the next block.
        Sheets are created in mapping order, even when they have no blocks.

        Args:
            sheets (Dict[str, List[SheetBlock]]): Sheet name to its blocks.

        Returns:
            bytes: The xlsx document.
        """
        buffer = BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            for sheet_name, blocks in sheets.items():
                worksheet = writer.book.create_sheet(sheet_name)
                row = 0
                for titles, frame in blocks:
                    for title in titles:
                        row += 1
                        if title is not None:
                            worksheet.cell(row=row, column=1, value=title)
                    frame.to_excel(writer, sheet_name=sheet_name, startrow=row, index=False)
                    row += len(frame.index) + 2

            for default_name in ("Sheet", "Sheet1"):
                if default_name in writer.book.sheetnames and default_name not in sheets:
                    writer.book.remove(writer.book[default_name])
        return buffer.getvalue()
